"""Portable backups of the encrypted vault.

A bundle is a JSON document with exactly two base64 fields, `salt` and
`cipher`. It is only ever the ciphertext: no password, key, metadata or
plaintext goes in, and importing it replaces the current vault wholesale.
"""
from __future__ import annotations
import json, logging
from datetime import date
from pathlib import Path
from typing import Dict
from config.settings import SALT_LENGTH, NONCE_LENGTH, AUTH_TAG_LENGTH, BACKUP_PREFIX, BACKUP_SUFFIX
from .crypto import b64decode, MalformedPayloadError
from .storage import VaultRecordStore, StorageError

log = logging.getLogger(__name__)

class BackupFormatError(Exception):
	pass

class NoVaultError(Exception):
	"""Nothing to export."""

def export_backup(store: VaultRecordStore) -> str:
	salt, cipher = store.get_salt_text(), store.get_cipher_text()
	if not salt or not cipher:
		raise NoVaultError('No vault to export')
	return json.dumps({'salt': salt, 'cipher': cipher})

def parse_backup(text: str) -> Dict[str, str]:
	"""Validate a bundle and return its two fields; touches no storage."""
	try:
		o = json.loads(text)
	except (TypeError, ValueError):
		raise BackupFormatError('Invalid backup format') from None
	if not isinstance(o, dict) or not isinstance(o.get('salt'), str) or not isinstance(o.get('cipher'), str):
		raise BackupFormatError('Invalid backup format')
	try:
		salt, cipher = b64decode(o['salt']), b64decode(o['cipher'])
	except MalformedPayloadError:
		raise BackupFormatError('Backup fields are not valid base64') from None
	if len(salt) != SALT_LENGTH:
		raise BackupFormatError('Backup salt has the wrong length')
	if len(cipher) < NONCE_LENGTH + AUTH_TAG_LENGTH:
		raise BackupFormatError('Backup cipher is too short')
	return {'salt': o['salt'], 'cipher': o['cipher']}

def import_backup(store: VaultRecordStore, text: str) -> None:
	"""Overwrite salt and cipher with the bundle's. Password is not checked."""
	bundle = parse_backup(text)
	store.replace_vault(bundle['salt'], bundle['cipher'])
	try:
		store.touch_meta()
	except StorageError as e:
		log.warning('Could not update vault metadata: %s', e)
	log.info('Vault replaced from backup')

def backup_filename(day: date | None = None) -> str:
	return f"{BACKUP_PREFIX}{(day or date.today()).isoformat()}{BACKUP_SUFFIX}"

def write_backup_file(store: VaultRecordStore, dest: Path) -> Path:
	"""Write a bundle to `dest` (a directory gets a dated filename)."""
	dest = Path(dest)
	if dest.is_dir():
		dest = dest / backup_filename()
	dest.parent.mkdir(parents=True, exist_ok=True)
	dest.write_text(export_backup(store), encoding='utf-8')
	return dest

def read_backup_file(path: Path) -> str:
	try:
		return Path(path).read_text(encoding='utf-8')
	except (OSError, UnicodeDecodeError) as e:
		raise BackupFormatError(f'Cannot read backup: {e}') from e
