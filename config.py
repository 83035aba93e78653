from dotenv import load_dotenv
import os

# Load all variables from the .env file
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """
    Central place for app configuration.
    Pulls values from .env and provides safe defaults.
    """

    # ---------------- Database ----------------
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///speakingcoach.db")

    # ---------------- OpenAI (standard) ----------------
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

    # ---------------- Azure OpenAI (optional) ----------------
    # These are optional; if not set, the code will fall back to standard OpenAI.
    AZURE_OPENAI_ENDPOINT = os.getenv("AZURE_OPENAI_ENDPOINT")
    AZURE_OPENAI_API_KEY = os.getenv("AZURE_OPENAI_API_KEY")
    AZURE_OPENAI_DEPLOYMENT = os.getenv("AZURE_OPENAI_DEPLOYMENT")

    # ---------------- External video analysis model ----------------
    EXTERNAL_AI_API_URL = os.getenv("EXTERNAL_AI_API_URL")
    EXTERNAL_AI_API_KEY = os.getenv("EXTERNAL_AI_API_KEY")
    EXTERNAL_AI_TIMEOUT = int(os.getenv("EXTERNAL_AI_TIMEOUT", "240"))  # seconds

    # ---------------- Identity provider ----------------
    AUTH_URL = os.getenv("AUTH_URL")
    AUTH_API_KEY = os.getenv("AUTH_API_KEY")

    # ---------------- Video storage (S3) ----------------
    AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
    AWS_ACCESS_KEY_ID = os.getenv("AWS_ACCESS_KEY_ID")
    AWS_SECRET_ACCESS_KEY = os.getenv("AWS_SECRET_ACCESS_KEY")
    AWS_S3_BUCKET_NAME = os.getenv("AWS_S3_BUCKET_NAME")
    SIGNED_URL_EXPIRY = int(os.getenv("SIGNED_URL_EXPIRY", "3600"))

    # ---------------- History / chat ----------------
    HISTORY_LIMIT = int(os.getenv("HISTORY_LIMIT", "20"))
    CHAT_HISTORY_LIMIT = int(os.getenv("CHAT_HISTORY_LIMIT", "10"))
    CHAT_MAX_MESSAGE_CHARS = int(os.getenv("CHAT_MAX_MESSAGE_CHARS", "2000"))
    # When false, "clear chat" deletes the rows instead of flagging them.
    CHAT_ARCHIVE_ON_CLEAR = _env_bool("CHAT_ARCHIVE_ON_CLEAR", True)

    # ---------------- Logging ----------------
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    AUDIT_LOG_PATH = os.getenv("AUDIT_LOG_PATH", "supervisor_log.txt")

    def missing_required(self):
        """Names of the core variables that are not set."""
        required = {
            "EXTERNAL_AI_API_URL": self.EXTERNAL_AI_API_URL,
            "AUTH_URL": self.AUTH_URL,
            "AWS_S3_BUCKET_NAME": self.AWS_S3_BUCKET_NAME,
        }
        if not (self.AZURE_OPENAI_ENDPOINT and self.AZURE_OPENAI_API_KEY):
            required["OPENAI_API_KEY"] = self.OPENAI_API_KEY
        return [name for name, value in required.items() if not value or not str(value).strip()]


# Create a global instance we can import anywhere
settings = Settings()
