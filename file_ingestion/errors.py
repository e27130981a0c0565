from __future__ import annotations


class IngestionError(Exception):
    pass


class IntakeValidationError(IngestionError):
    """Bad content shape found before a worker run starts; no FileRecord is created."""

    def __init__(self, message: str, file_name: str = ""):
        super().__init__(message)
        self.message = message
        self.file_name = file_name


class HeaderValidationError(IntakeValidationError):
    """Header problem found by the worker itself. Terminal, never retried."""


class SystemFault(IngestionError):
    """I/O or persistence failure in the middle of a run. Eligible for retry."""


class NotFoundError(IngestionError):
    def __init__(self, kind: str, ident):
        super().__init__(f"{kind} not found: {ident}")
        self.kind = kind
        self.ident = ident
