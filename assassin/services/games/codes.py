import random
import string

CODE_ALPHABET = string.ascii_uppercase + string.digits


def random_code(length: int = 5) -> str:
    """Generate a short, shareable join code."""
    return ''.join(random.choices(CODE_ALPHABET, k=length))
