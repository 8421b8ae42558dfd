from pwdlib import PasswordHash

from swiftstock.errors import ValidationError

MIN_PASSWORD_LENGTH = 6

password_hash = PasswordHash.recommended()


def check_password_policy(raw_password: str | None) -> str:
    if not raw_password or len(raw_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
    return raw_password


def hash_password(raw_password: str) -> str:
    return password_hash.hash(check_password_policy(raw_password))


def verify_password(raw_password: str, hashed_password: str) -> bool:
    if not raw_password or not hashed_password:
        return False
    return password_hash.verify(raw_password, hashed_password)
