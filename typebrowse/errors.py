"""
Exceptions raised while classifying and converting files.
"""


class TypebrowseError(Exception):
    pass


class UnsupportedMediaType(TypebrowseError):
    """A conversion was requested for a file that is neither image nor video."""

    def __init__(self, media_type, key):
        self.media_type = media_type
        self.key = key
        super().__init__(f"invalid type: {media_type.value} ({key})")


class ConversionError(TypebrowseError):
    def __init__(self, command, message):
        self.command = list(command)
        super().__init__(message)


class SpawnError(ConversionError):
    def __init__(self, command, cause):
        self.cause = cause
        super().__init__(command, f"could not start {command[0]}: {cause}")


class NoStdoutError(ConversionError):
    def __init__(self, command):
        super().__init__(command, f"no stdout from {command[0]}")


class ConversionFailed(ConversionError):
    def __init__(self, command, returncode, stdout=b'', stderr=b''):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(command, f"{command[0]} exited with status {returncode}")

    @property
    def output(self) -> str:
        """Captured process output, for diagnostics."""
        return (self.stderr or self.stdout or b'').decode('utf-8', errors='replace').strip()


class ConversionTimeout(ConversionError):
    def __init__(self, command, timeout):
        self.timeout = timeout
        super().__init__(command, f"{command[0]} did not finish within {timeout}s")
