import secrets
import string

UPPERCASE = string.ascii_uppercase
LOWERCASE = string.ascii_lowercase
DIGITS = string.digits
SYMBOLS = "!@#$%^&*()_+-=[]{}|;:,.<>?"
MIN_PASSWORD_LENGTH = 16


def generate_strong_password(length: int = MIN_PASSWORD_LENGTH) -> str:
    """At least one character from each class, shuffled."""
    length = max(length, MIN_PASSWORD_LENGTH)
    chars = [secrets.choice(pool) for pool in (UPPERCASE, LOWERCASE, DIGITS, SYMBOLS)]
    alphabet = UPPERCASE + LOWERCASE + DIGITS + SYMBOLS
    chars.extend(secrets.choice(alphabet) for _ in range(length - len(chars)))
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


def random_suffix(size: int = 6) -> str:
    return "".join(secrets.choice(LOWERCASE + DIGITS) for _ in range(size))
