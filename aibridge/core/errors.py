# aibridge/core/errors.py
"""AI Bridge 异常定义"""


class BridgeError(Exception):
    """Base class for all errors raised by aibridge."""


class UnparseableResponse(BridgeError):
    """No JSON candidate could be extracted from the model response."""

    def __init__(self, text_length: int, candidates_tried: int):
        self.text_length = text_length
        self.candidates_tried = candidates_tried
        super().__init__(
            f"Could not find valid JSON in the response "
            f"({text_length} chars, {candidates_tried} candidates tried)."
        )


class ConfigError(BridgeError):
    """Invalid .aibridge/config.yaml content."""
