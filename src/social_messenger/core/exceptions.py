class MessengerError(Exception):
    """Base class for every recoverable failure raised by the core."""

class ValidationError(MessengerError):
    """Blank input, oversized message or otherwise malformed argument."""

class NotFoundError(MessengerError):
    """Unknown user, chat, message or membership."""

class AuthorizationError(MessengerError):
    """Actor lacks the right to perform the operation."""

class DuplicateMemberError(MessengerError):
    """Membership row already exists."""

class DuplicateLoginError(MessengerError):
    """A user with this login already exists."""

class InvalidCredentialsError(MessengerError):
    pass

class MembershipConflictError(MessengerError):
    """User still belongs to at least one chat."""

class StorageError(MessengerError):
    """The database rejected or failed the operation."""
