"""
Domain errors raised by the storage and variant processing layers.

Services in ``api/`` translate these into ``HTTPException`` responses;
everything else lets them propagate to the caller.
"""


class FileStorageError(Exception):
    """Base class for all errors raised by this application"""


# ============================================================================
# Variant / operation errors
# ============================================================================


class VariantError(FileStorageError):
    """Errors raised while declaring or applying image variants"""


class MissingArgumentError(VariantError, ValueError):
    """A required operation argument is absent"""

    def __init__(self, operation: str, argument: str):
        self.operation = operation
        self.argument = argument
        super().__init__(
            f"Operation `{operation}` is missing the required argument `{argument}`"
        )


class InvalidArgumentError(VariantError, ValueError):
    """A supplied argument failed validation"""

    def __init__(self, message: str, operation: str | None = None, argument: str | None = None):
        self.operation = operation
        self.argument = argument
        super().__init__(message)


class InvalidDirectionError(InvalidArgumentError):
    """Flip direction is neither `h` nor `v`"""

    def __init__(self, direction):
        self.direction = direction
        super().__init__(
            f"`{direction}` is invalid, provide `h` or `v`",
            operation="flip",
            argument="direction",
        )


class UnsupportedOperationError(VariantError):
    """The operation name is not known to the dispatcher"""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Operation `{name}` is not implemented or supported")


class DuplicateVariantError(VariantError):
    """A variant name was registered twice in one collection"""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"A variant named `{name}` already exists")


class VariantNotFoundError(VariantError, KeyError):
    """The collection has no variant with this name"""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"A variant named `{name}` does not exist")

    def __str__(self):
        return self.args[0]


# ============================================================================
# Filesystem / storage errors
# ============================================================================


class TempFileCreationError(FileStorageError, OSError):
    """A local temporary file could not be created or written"""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Failed to create `{path}`")

    def __str__(self):
        return f"Failed to create `{self.path}`"


class StorageError(FileStorageError):
    """Errors raised by storage backends"""


class StorageNotFoundError(StorageError):
    """No backend is registered under the requested name"""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Storage backend `{name}` is not configured")


class StorageObjectNotFoundError(StorageError):
    """The backend holds no object at the requested path"""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File not found in storage: {path}")


class OptimizerError(FileStorageError):
    """An optimizer binary exited with an error"""

    def __init__(self, command: list[str], returncode: int, stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"Optimizer `{command[0]}` failed with exit code {returncode}: {stderr.strip()}"
        )
