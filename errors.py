from typing import Optional


class TravelGuideError(Exception):
    """Base class for every error raised by the travel guide."""


class InvalidCoordinatesError(TravelGuideError):
    def __init__(self, text: str):
        super().__init__("Invalid coordinates")
        self.text = text


class MissingCredentialError(TravelGuideError):
    def __init__(self, name: str):
        super().__init__(f"Missing {name}")
        self.name = name


class ProviderError(TravelGuideError):
    """Non-success HTTP response from one of the provider services."""

    def __init__(self, service: str, status_code: Optional[int], body: str):
        super().__init__(f"{service} error: {status_code} {body}")
        self.service = service
        self.status_code = status_code
        self.body = body


class EmptyReplyError(TravelGuideError):
    pass


class MalformedReplyError(TravelGuideError):
    pass


class MissingFileError(TravelGuideError):
    def __init__(self, path):
        super().__init__(f"Audio file does not exist: {path}")
        self.path = path


class CaptureError(TravelGuideError):
    """Microphone permission was denied or the recording session could not start."""


class BusyError(TravelGuideError):
    pass
