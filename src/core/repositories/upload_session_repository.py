"""Abstract contract for upload session persistence."""

from abc import ABC, abstractmethod

from core.models.upload_session import UploadSession


class UploadSessionRepository(ABC):
    """Contract for storing upload session state.

    The repository is the single source of truth for which chunks a session
    has received, shared by every container. Transitions out of the open
    states (ASSEMBLING, COMPLETED, FAILED) must be conditional so that one
    request claims completion and a session terminates exactly once.
    """

    @abstractmethod
    def create_session(self, *, session: UploadSession) -> None:
        """Persist a new session.

        Raises:
            UploadSessionError: If a session with the same id already exists
            DynamoDBError: If creation fails
        """

    @abstractmethod
    def fetch_session(self, *, session_id: str) -> UploadSession | None:
        """Fetch a session, or None if absent."""

    @abstractmethod
    def record_chunk(self, *, session_id: str, chunk_index: int) -> int:
        """Mark `chunk_index` received and move PENDING sessions to UPLOADING.

        Recording an index twice counts it once.

        Returns:
            Number of distinct chunk indices received so far

        Raises:
            UploadSessionError: If the session no longer accepts chunks
        """

    @abstractmethod
    def claim_completion(self, *, session_id: str) -> bool:
        """Move an open session to ASSEMBLING.

        Returns:
            True for the one caller allowed to assemble and ingest the file
        """

    @abstractmethod
    def mark_completed(self, *, session_id: str, storage_key: str, image_id: str) -> bool:
        """Transition an ASSEMBLING session to COMPLETED.

        Returns:
            True if this call performed the transition
        """

    @abstractmethod
    def mark_failed(self, *, session_id: str, reason: str) -> bool:
        """Transition a non-terminal session to FAILED.

        Returns:
            True if this call performed the transition
        """
