"""Persistence layer: generic key/value stores + the vault field façade.

The vault is four independent text fields (salt, cipher, meta, lock) kept in
any store offering get/set/remove. Each single-field write is atomic; writes
spanning fields go through `VaultRecordStore.replace_vault`, which uses the
store's `set_many` when it has one and otherwise restores the previous pair
if the second write does not complete.
"""
from __future__ import annotations
import json, os, logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Protocol
from config.settings import SALT_KEY, CIPHER_KEY, META_KEY, LOCK_KEY
from .crypto import b64encode, b64decode

log = logging.getLogger(__name__)

class StorageError(Exception): ...

class KeyValueStore(Protocol):
	def get(self, key: str) -> Optional[str]: ...
	def set(self, key: str, value: str) -> None: ...
	def remove(self, key: str) -> None: ...

class MemoryKeyValueStore:
	def __init__(self, initial: Dict[str, str] | None = None):
		self.data: Dict[str, str] = dict(initial or {})

	def get(self, key: str) -> Optional[str]:
		return self.data.get(key)

	def set(self, key: str, value: str) -> None:
		self.data[key] = value

	def remove(self, key: str) -> None:
		self.data.pop(key, None)

class FileKeyValueStore:
	"""All keys in one JSON object on disk, rewritten atomically on change."""

	def __init__(self, path: Path | str):
		self.path = Path(path)

	def exists(self) -> bool:
		return self.path.exists() and self.path.stat().st_size > 0

	def _read(self) -> Dict[str, str]:
		if not self.exists(): return {}
		try:
			raw = json.loads(self.path.read_text(encoding='utf-8'))
		except (OSError, ValueError) as e:
			raise StorageError(f'Cannot read {self.path}: {e}') from e
		if not isinstance(raw, dict):
			raise StorageError(f'Corrupt store file {self.path}')
		return {k: v for k, v in raw.items() if isinstance(v, str)}

	def _write(self, data: Dict[str, str]) -> None:
		tmp = self.path.with_suffix(self.path.suffix + '.tmp')
		try:
			self.path.parent.mkdir(parents=True, exist_ok=True)
			tmp.write_text(json.dumps(data, indent=2), encoding='utf-8')
			os.replace(tmp, self.path)
		except OSError as e:
			try:
				tmp.unlink(missing_ok=True)
			except OSError:
				pass
			raise StorageError(f'Cannot write {self.path}: {e}') from e

	def get(self, key: str) -> Optional[str]:
		return self._read().get(key)

	def set(self, key: str, value: str) -> None:
		data = self._read()
		data[key] = value
		self._write(data)

	def set_many(self, values: Dict[str, str]) -> None:
		data = self._read()
		data.update(values)
		self._write(data)

	def remove(self, key: str) -> None:
		data = self._read()
		if data.pop(key, None) is not None:
			self._write(data)

def now_iso() -> str:
	return datetime.now(timezone.utc).isoformat()

class VaultRecordStore:
	def __init__(self, kv: KeyValueStore):
		self.kv = kv

	def exists(self) -> bool:
		return bool(self.kv.get(SALT_KEY) or self.kv.get(CIPHER_KEY))

	# raw base64 text, used by backups
	def get_salt_text(self) -> Optional[str]:
		return self.kv.get(SALT_KEY) or None

	def get_cipher_text(self) -> Optional[str]:
		return self.kv.get(CIPHER_KEY) or None

	def get_salt(self) -> Optional[bytes]:
		text = self.get_salt_text()
		return b64decode(text) if text else None

	def set_salt(self, salt: bytes) -> None:
		self.kv.set(SALT_KEY, b64encode(salt))

	def get_cipher(self) -> Optional[bytes]:
		text = self.get_cipher_text()
		return b64decode(text) if text else None

	def set_cipher(self, blob: bytes) -> None:
		self.kv.set(CIPHER_KEY, b64encode(blob))

	def get_meta(self) -> Dict[str, str]:
		raw = self.kv.get(META_KEY)
		if not raw: return {}
		try:
			o = json.loads(raw)
		except ValueError:
			return {}
		if isinstance(o, dict) and isinstance(o.get('lastUpdated'), str):
			return {'lastUpdated': o['lastUpdated']}
		return {}

	def set_meta(self, meta: Dict[str, str]) -> None:
		self.kv.set(META_KEY, json.dumps(meta))

	def touch_meta(self) -> None:
		self.set_meta({'lastUpdated': now_iso()})

	def is_locked(self) -> bool:
		return self.kv.get(LOCK_KEY) == '1'

	def set_locked(self, locked: bool) -> None:
		if locked: self.kv.set(LOCK_KEY, '1')
		else: self.kv.remove(LOCK_KEY)

	def replace_vault(self, salt_text: str, cipher_text: str) -> None:
		"""Write a new (salt, cipher) pair; on any failure put the old pair back.

		Stores with `set_many` write both fields in one atomic step.
		"""
		set_many = getattr(self.kv, 'set_many', None)
		if set_many is not None:
			set_many({SALT_KEY: salt_text, CIPHER_KEY: cipher_text})
			return
		old_salt, old_cipher = self.kv.get(SALT_KEY), self.kv.get(CIPHER_KEY)
		try:
			self.kv.set(SALT_KEY, salt_text)
			self.kv.set(CIPHER_KEY, cipher_text)
		except BaseException:
			log.warning('Vault write interrupted; restoring previous salt and cipher')
			self._restore(SALT_KEY, old_salt)
			self._restore(CIPHER_KEY, old_cipher)
			raise

	def _restore(self, key: str, value: Optional[str]) -> None:
		try:
			if value is None: self.kv.remove(key)
			else: self.kv.set(key, value)
		except StorageError:
			log.error('Could not restore field %s', key)
