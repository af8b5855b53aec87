from typing import Optional


class PalSaveError(Exception):
    """Base class for every failure raised while reading or writing a save."""


class Truncated(PalSaveError):
    """Fewer bytes are available than a field or length prefix demands."""

    def __init__(self, offset: int, needed: int, available: int, what: str = "data"):
        super().__init__(
            f"truncated {what} at offset {offset}: need {needed} byte(s), {available} available")
        self.offset = offset
        self.needed = needed
        self.available = available


class ImplausibleLength(Truncated):
    """A length prefix claims more elements than the remaining input could hold."""

    def __init__(self, offset: int, count: int, needed: int, available: int):
        PalSaveError.__init__(
            self, f"implausible length {count} at offset {offset}: "
                  f"needs at least {needed} byte(s), {available} available")
        self.offset = offset
        self.count = count
        self.needed = needed
        self.available = available


class InvalidMagic(PalSaveError):
    def __init__(self, magic: bytes):
        super().__init__(f"invalid magic {magic!r}, expected b'PlZ'")
        self.magic = magic


class UnknownCompressionTier(PalSaveError):
    def __init__(self, tier: int):
        super().__init__(f"unknown compression tier 0x{tier:02x}")
        self.tier = tier


class DecompressionError(PalSaveError):
    pass


class MalformedProperty(PalSaveError):
    """The property tree (or a record built on it) is structurally inconsistent."""

    def __init__(self, message: str, offset: Optional[int] = None):
        if offset is not None:
            message = f"{message} (at offset {offset})"
        super().__init__(message)
        self.offset = offset


class NotFound(PalSaveError):
    def __init__(self, path: str):
        super().__init__(f"property not found: {path}")
        self.path = path


class TypeMismatch(PalSaveError):
    def __init__(self, path: str, expected: str, actual: str):
        super().__init__(f"{path}: expected {expected}, found {actual}")
        self.path = path
        self.expected = expected
        self.actual = actual
