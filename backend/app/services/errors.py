class ImportValidationError(ValueError):
    """File-level problem reported to the caller before any row is stored."""


class MissingMappingFieldError(ImportValidationError):
    def __init__(self, field: str) -> None:
        super().__init__(f"Missing required mapping field: {field}")
        self.field = field


class InvalidFileError(ImportValidationError):
    def __init__(self, message: str = "Invalid file format") -> None:
        super().__init__(message)


class CsvParseError(ImportValidationError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"CSV parsing failed: {reason}")
        self.reason = reason


class EmptyFileError(ImportValidationError):
    def __init__(self) -> None:
        super().__init__("CSV file is empty")


class RowError(ValueError):
    """A single CSV row could not be turned into a transaction."""


class InvalidAmountError(RowError):
    def __init__(self, value) -> None:
        super().__init__(f"Invalid amount: {value}")


class InvalidDateError(RowError):
    def __init__(self, value) -> None:
        super().__init__(f"Invalid date: {value}")
