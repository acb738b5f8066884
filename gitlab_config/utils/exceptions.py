from typing import Any


class GitLabConfigError(Exception):
    pass


class ConfigurationError(GitLabConfigError):
    pass


class SchemaError(GitLabConfigError):
    pass


class SopsError(GitLabConfigError):
    pass


class ProjectionError(GitLabConfigError):
    def __init__(
        self,
        kind: str,
        field: str,
        msg: str,
        index: int | None = None,
        value: Any = None,
    ) -> None:
        self.kind = kind
        self.field = field
        self.index = index
        self.value = value
        where = f" at index {index}" if index is not None else ""
        super().__init__(f'{kind}{where}: field "{field}" {msg}')


class ReconciliationInputError(GitLabConfigError):
    def __init__(
        self,
        kind: str,
        msg: str,
        index: int | None = None,
        field: str | None = None,
    ) -> None:
        self.kind = kind
        self.index = index
        self.field = field
        where = f" at index {index}" if index is not None else ""
        super().__init__(f"{kind}{where}: {msg}")


class RemoteOperationError(GitLabConfigError):
    def __init__(self, purpose: str, **details: Any) -> None:
        self.purpose = purpose
        self.details = details
        msg = purpose
        if details:
            msg += " (" + ", ".join(f"{k}={v!r}" for k, v in details.items()) + ")"
        super().__init__(msg)


def type_name(value: Any) -> str:
    return "null" if value is None else type(value).__name__
