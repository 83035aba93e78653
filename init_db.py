from db import engine, Base
from models import FeedbackSession, ChatMessage  # noqa: F401  (registers the tables)


def main():
    # Creates every table registered on Base (feedback_sessions, chat_messages)
    # together with the unique cache index.
    Base.metadata.create_all(bind=engine)
    print("Database tables created.")


if __name__ == "__main__":
    main()
