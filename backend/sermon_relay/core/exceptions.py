"""Custom exceptions for the relay service."""


class RoomNotFound(Exception):
    """Raised when a room code does not resolve to an active room."""

    def __init__(self, room_code: str):
        self.room_code = room_code
        super().__init__(f"Room '{room_code}' not found")


class Unauthorized(Exception):
    """Raised when a connection attempts a preacher-only action it may not perform."""

    def __init__(self, connection_id: str, action: str):
        self.connection_id = connection_id
        self.action = action
        super().__init__(f"Unauthorized to {action}")


class TranscriptionError(Exception):
    """Raised when the speech-to-text provider fails."""

    def __init__(self, size: int, cause: Exception | None = None):
        self.size = size
        self.cause = cause
        super().__init__(f"Failed to transcribe {size} bytes of audio")


class TranslationError(Exception):
    """Raised when translating text into a target language fails."""

    def __init__(self, language: str, cause: Exception | None = None):
        self.language = language
        self.cause = cause
        super().__init__(f"Failed to translate text to '{language}'")


class StorageError(Exception):
    """Raised when a storage operation fails."""

    def __init__(self, operation: str, cause: Exception | None = None):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Storage operation '{operation}' failed")


class InvalidAudioError(Exception):
    """Raised when an incoming audio chunk is empty, undecodable or too large."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid audio chunk: {reason}")
