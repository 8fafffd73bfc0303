from __future__ import annotations

from typing import Iterable


class ConversionError(ValueError):
    """Base class for fatal, structural conversion failures."""


class EmptyDocumentError(ConversionError):
    def __init__(self) -> None:
        super().__init__("Document is empty")


class MissingDocumentClassError(ConversionError):
    def __init__(self) -> None:
        super().__init__("Missing \\documentclass command")


NoDocumentClassError = MissingDocumentClassError


class MissingDocumentEnvironmentError(ConversionError):
    def __init__(self, marker: str = "begin") -> None:
        self.marker = marker
        super().__init__(f"Missing \\{marker}{{document}} command")


class UnsupportedClassError(ConversionError):
    def __init__(self, name: str, supported: Iterable[str]) -> None:
        self.name = name
        self.supported = list(supported)
        super().__init__(
            f"Unsupported document class: {name}. Supported classes: {', '.join(self.supported)}"
        )


class UnbalancedEnvironmentError(ConversionError):
    def __init__(self, errors: Iterable[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))
