class TokenSealError(Exception):
    """Base class for tokenseal errors."""


# Payload (de)serialization
class SerializationError(TokenSealError):
    pass


class DeserializationError(TokenSealError):
    pass


class ShapeMismatchError(DeserializationError):
    pass


# Token validation. Callers should not reveal which of these occurred.
class InvalidTokenError(TokenSealError):
    pass


class MalformedTokenError(InvalidTokenError):
    pass


class AuthenticationError(InvalidTokenError):
    pass


class EntropyError(TokenSealError):
    """The operating system randomness source failed."""
