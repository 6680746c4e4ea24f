from passlib.context import CryptContext


class HashGenerator:
    def __init__(self):
        self._hash_ctx: CryptContext = CryptContext(schemes=["bcrypt"], deprecated="auto")

    def generate_password_hash(self, hash_salt: str, password: str) -> str:
        return self._hash_ctx.hash(secret=hash_salt + password)

    def is_password_verified(self, password: str, hashed_password: str) -> bool:
        return self._hash_ctx.verify(secret=password, hash=hashed_password)

def get_hash_generator() -> HashGenerator:
    return HashGenerator()

hash_generator: HashGenerator = get_hash_generator()
