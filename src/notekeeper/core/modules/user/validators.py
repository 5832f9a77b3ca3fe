from notekeeper.errors import ValidationError
from notekeeper.utils import is_email

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def validate_password(password: str) -> None:
    """Validate password meets requirements.

    Requirements:
    - Minimum length of 6 characters
    - At most 72 bytes when UTF-8 encoded
    - No whitespace characters

    Raises:
        ValidationError: If password doesn't meet requirements
    """
    if len(password) < 6:
        raise ValidationError("Password must be at least 6 characters long")

    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")

    if any(char.isspace() for char in password):
        raise ValidationError("Password cannot contain whitespace characters")


def validate_name(name: str) -> str:
    """Return the trimmed display name, rejecting names shorter than 2 characters."""
    name = name.strip()
    if len(name) < 2:
        raise ValidationError("Name must be at least 2 characters long")
    if len(name) > 50:
        raise ValidationError("Name must be at most 50 characters long")
    return name


def normalize_email(email: str) -> str:
    """Return the canonical (trimmed, lower-cased) form of an email address."""
    email = email.strip().lower()
    if not is_email(email):
        raise ValidationError("Invalid email address")
    return email
