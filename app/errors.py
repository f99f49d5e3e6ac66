"""Error types raised by the services and rendered at the request boundary."""

from typing import Any

SAMPLE_CHARS = 200


def body_sample(body: bytes | str, limit: int = SAMPLE_CHARS) -> str:
    """Short printable excerpt of a response body for diagnostics."""
    if isinstance(body, bytes):
        body = body[: limit * 4].decode("utf-8", errors="replace")
    return body[:limit]


class GatewayError(Exception):
    status_code = 500

    def __init__(self, error: str, details: Any = None):
        super().__init__(error)
        self.error = error
        self.details = details

    def to_payload(self) -> dict:
        payload = {"error": self.error}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class MissingCredential(GatewayError):
    status_code = 500


class MissingInput(GatewayError):
    status_code = 400


class InvalidInput(GatewayError):
    status_code = 400


class _SampledError(GatewayError):
    status_code = 400

    def __init__(self, error: str, sample: str = "", details: Any = None):
        super().__init__(error, details)
        self.sample = body_sample(sample)

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["sample"] = self.sample
        return payload


class NotAnImage(_SampledError):
    pass


class NotAudio(_SampledError):
    pass


class PayloadTooLarge(GatewayError):
    status_code = 413


class ImageTooLarge(PayloadTooLarge):
    pass


class UpstreamError(GatewayError):
    status_code = 502


class TranscodeFailed(GatewayError):
    status_code = 500
