import logging
import os
import tempfile

import boto3
import requests
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from config import settings
from errors import UpstreamServiceError

logger = logging.getLogger(__name__)

_s3_client = None


def get_s3_client():
    """S3 client built from settings, or from the default credential chain."""
    global _s3_client
    if _s3_client is None:
        if settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
            _s3_client = boto3.client(
                "s3",
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                region_name=settings.AWS_REGION,
            )
            logger.info("S3 client initialized with provided credentials")
        else:
            # IAM roles, shared config files, etc.
            _s3_client = boto3.client("s3", region_name=settings.AWS_REGION)
            logger.info("S3 client initialized with default credential chain")
    return _s3_client


def generate_download_url(video_path: str, expires_in: int = None) -> str:
    """Presigned GET url for a stored video."""
    try:
        return get_s3_client().generate_presigned_url(
            "get_object",
            Params={"Bucket": settings.AWS_S3_BUCKET_NAME, "Key": video_path},
            ExpiresIn=expires_in or settings.SIGNED_URL_EXPIRY,
        )
    except NoCredentialsError as e:
        logger.error("AWS credentials not found while signing %s", video_path)
        raise UpstreamServiceError("Failed to access video storage. Please try again.", detail=str(e))
    except (ClientError, BotoCoreError) as e:
        logger.error("Could not sign url for %s: %s", video_path, e)
        raise UpstreamServiceError("Failed to access video storage. Please try again.", detail=str(e))


def download_video(video_path: str) -> str:
    """
    Download the video behind ``video_path`` to a temporary .mp4 file.

    Returns the temp file path; the caller removes it.
    """
    url = generate_download_url(video_path)
    temp_file = tempfile.NamedTemporaryFile(delete=False, suffix=".mp4")
    temp_file.close()

    try:
        with requests.get(url, stream=True, timeout=settings.EXTERNAL_AI_TIMEOUT) as response:
            response.raise_for_status()
            with open(temp_file.name, "wb") as f:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        f.write(chunk)
    except requests.RequestException as e:
        os.remove(temp_file.name)
        logger.error("Failed to download video %s: %s", video_path, e)
        raise UpstreamServiceError("Failed to access video storage. Please try again.", detail=str(e))
    except BaseException:
        # partial file from a failed write
        os.remove(temp_file.name)
        raise

    logger.info("Video %s downloaded to %s (%d bytes)", video_path, temp_file.name, os.path.getsize(temp_file.name))
    return temp_file.name
