from .config import settings
from .security import SecretHasher, secret_hasher, token_manager

__all__ = ["settings", "SecretHasher", "secret_hasher", "token_manager"]
