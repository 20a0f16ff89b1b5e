"""Project configuration settings.

Module-level constants only. Values that depend on the environment are read
once at import; code that must honour overrides made later (tests, the CLI)
calls the small helpers at the bottom instead.
"""

from pathlib import Path
import os

# Security / crypto
DEFAULT_ITERATIONS = 100_000  # PBKDF2-SHA256
SALT_LENGTH = 16
KEY_LENGTH = 32  # AES-256
NONCE_LENGTH = 12  # GCM nonce, 96 bits
AUTH_TAG_LENGTH = 16  # GCM tag length

# Vault
DEFAULT_VAULT_PATH = Path(os.environ.get("DIARY_VAULT_PATH", "vault_data/diary.json"))
AUTO_LOCK_TIMEOUT = float(os.environ.get("DIARY_AUTO_LOCK_SECONDS", 600))  # 10 minutes
MIN_PASSWORD_LENGTH = 6
WEAK_PASSWORD_SCORE = 40  # init/passwd warn below this

# Persisted field keys
SALT_KEY = "diary_salt_v1"
CIPHER_KEY = "diary_cipher_v1"
META_KEY = "diary_meta_v1"
LOCK_KEY = "diary_lock_v1"

# Limits
MAX_ENTRY_SIZE = 1024 * 1024  # 1MB text entries

# Backups
BACKUP_PREFIX = "diary-backup-"
BACKUP_SUFFIX = ".json"

# Logging
LOG_LEVEL = os.environ.get("DIARY_LOG_LEVEL", "WARNING")


def vault_path() -> Path:
	env_path = os.environ.get("DIARY_VAULT_PATH")
	return Path(env_path) if env_path else DEFAULT_VAULT_PATH


def auto_lock_timeout() -> float:
	env = os.environ.get("DIARY_AUTO_LOCK_SECONDS")
	return float(env) if env else AUTO_LOCK_TIMEOUT


__all__ = [
	'DEFAULT_ITERATIONS','SALT_LENGTH','KEY_LENGTH','NONCE_LENGTH','AUTH_TAG_LENGTH',
	'DEFAULT_VAULT_PATH','AUTO_LOCK_TIMEOUT','MIN_PASSWORD_LENGTH','WEAK_PASSWORD_SCORE',
	'SALT_KEY','CIPHER_KEY','META_KEY','LOCK_KEY','MAX_ENTRY_SIZE',
	'BACKUP_PREFIX','BACKUP_SUFFIX','LOG_LEVEL','vault_path','auto_lock_timeout'
]
