"""Validation orchestrator: one pass/fail decision with every violation."""

from concurrent.futures import ThreadPoolExecutor

from aws_lambda_powertools import Logger

from core.models.errors import ImageServiceError
from core.models.validation import FaceDetectionResult, ValidationMetadata, ValidationResult
from core.pipeline.face_policy import ContentPolicyChecker
from core.pipeline.fingerprint import compute_content_hash
from core.pipeline.quality import QualityAnalyzer, QualityReport
from core.utils.constants import ALLOWED_IMAGE_FORMATS
from core.utils.settings import PipelineSettings

logger = Logger(UTC=True)


class ValidationOrchestrator:
    """Sequences quality analysis, content policy and hashing.

    Checks run in a fixed order (min dimensions, max dimensions, format,
    file size, blur, face policy) and never short-circuit. Quality analysis
    and face detection are independent and run concurrently. `validate`
    always returns a result; internal failures become a single violation.
    """

    def __init__(
        self,
        *,
        settings: PipelineSettings,
        quality: QualityAnalyzer,
        policy: ContentPolicyChecker,
    ) -> None:
        self.settings = settings
        self._quality = quality
        self._policy = policy

    def validate(self, data: bytes) -> ValidationResult:
        content_hash = compute_content_hash(data)
        metadata = ValidationMetadata(size=len(data), content_hash=content_hash)

        try:
            with ThreadPoolExecutor(max_workers=1) as executor:
                faces_future = executor.submit(self._policy.detect, data)
                report = self._quality.analyze(data)
                faces = faces_future.result()

        except ImageServiceError as exc:
            logger.warning("Image processing failed", extra={"error": exc.message})
            return ValidationResult.from_violations(
                [f"Image processing error: {exc.message}"], metadata
            )

        except Exception as exc:
            logger.exception("Unexpected error during validation")
            return ValidationResult.from_violations([f"Image processing error: {exc}"], metadata)

        metadata = self._metadata(report, faces, content_hash)
        errors = self._quality_violations(report) + self._policy.violations(faces)

        if errors:
            logger.info("Image failed validation", extra={"violations": errors})

        return ValidationResult.from_violations(errors, metadata)

    def _quality_violations(self, report: QualityReport) -> list[str]:
        s = self.settings
        width, height = report.header.width, report.header.height
        errors: list[str] = []

        if width < s.min_width or height < s.min_height:
            errors.append(
                f"Image too small. Minimum size: {s.min_width}x{s.min_height}, "
                f"got: {width}x{height}"
            )

        if width > s.max_width or height > s.max_height:
            errors.append(
                f"Image too large. Maximum size: {s.max_width}x{s.max_height}, "
                f"got: {width}x{height}"
            )

        if report.header.format not in ALLOWED_IMAGE_FORMATS:
            errors.append(
                f"Invalid format. Allowed: {', '.join(ALLOWED_IMAGE_FORMATS)}, "
                f"got: {report.header.format}"
            )

        if report.size > s.max_file_size:
            errors.append(
                f"File too large. Maximum size: {s.max_file_size} bytes, got: {report.size}"
            )

        if report.blur_score < s.blur_threshold:
            errors.append(f"Image appears to be blurry (blur score: {report.blur_score:.2f})")

        return errors

    @staticmethod
    def _metadata(
        report: QualityReport, faces: FaceDetectionResult, content_hash: str
    ) -> ValidationMetadata:
        return ValidationMetadata(
            width=report.header.width,
            height=report.header.height,
            size=report.size,
            format=report.header.format,
            blur_score=report.blur_score,
            face_count=faces.face_count,
            face_area=faces.dominant_face_area,
            face_detection_error=faces.error,
            content_hash=content_hash,
        )
