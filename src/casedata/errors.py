"""Exceptions raised while fetching and cleaning case tables."""


class CaseDataError(Exception):
    """Base class for case-data failures that should halt the report build."""


class SourceError(CaseDataError):
    def __init__(self, message: str, source: str | None = None):
        super().__init__(message)
        self.source = source


class DataValidationError(CaseDataError):
    def __init__(self, message: str, region: str | None = None, fields: list[str] | None = None):
        super().__init__(message)
        self.region = region
        self.fields = fields or []
