"""Photo Intake Service Package."""

__version__ = "1.0.0"
__description__ = (
    "Serverless photo validation and ingestion using AWS Lambda, S3, DynamoDB and Rekognition"
)

__all__ = ["handlers", "core"]
