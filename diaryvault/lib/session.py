"""Vault session: the only holder of the derived key and decrypted entries.

States::

	NO_VAULT --set_password--> UNLOCKED
	LOCKED   --unlock--------> UNLOCKED --lock / inactivity--> LOCKED

A fresh session is NO_VAULT or LOCKED depending on what storage holds; the
persisted lock flag is a hint for other readers and never unlocks anything.
Every public operation runs under one re-entrant lock per session, so a slow
write cannot interleave with a lock.
"""
from __future__ import annotations
import enum, logging, threading
from typing import Callable, List, Optional
from config.settings import MIN_PASSWORD_LENGTH
from . import backup, records
from .crypto import VaultCrypto, CryptoError, AuthenticationError, MalformedPayloadError, b64encode
from .records import DiaryEntry, dumps_entries, loads_entries
from .storage import VaultRecordStore, StorageError

log = logging.getLogger(__name__)

GENERIC_AUTH_MESSAGE = 'Wrong password or invalid data.'

class VaultState(enum.Enum):
	NO_VAULT = 'no vault'
	LOCKED = 'locked'
	UNLOCKED = 'unlocked'

class VaultStateError(Exception):
	"""Operation called in a state that does not allow it."""

class PasswordPolicyError(Exception):
	pass

Listener = Callable[[VaultState], None]

def _clean(password: str | None) -> str:
	# surrounding whitespace is never part of a password
	return (password or '').strip()

class VaultSession:
	def __init__(self, store: VaultRecordStore, crypto: VaultCrypto | None = None):
		self.store = store
		self.crypto = crypto or VaultCrypto()
		self._mutex = threading.RLock()
		self._key: Optional[bytearray] = None
		self._entries: List[DiaryEntry] = []
		self._listeners: List[Listener] = []

	def __enter__(self):
		return self

	def __exit__(self, *exc):
		self.close()

	# --- state ---

	@property
	def state(self) -> VaultState:
		with self._mutex:
			if self._key is not None:
				return VaultState.UNLOCKED
			return VaultState.LOCKED if self.store.exists() else VaultState.NO_VAULT

	@property
	def is_unlocked(self) -> bool:
		return self._key is not None

	@property
	def last_updated(self) -> Optional[str]:
		return self.store.get_meta().get('lastUpdated')

	def add_listener(self, callback: Listener) -> None:
		"""Call `callback(state)` on every lock/unlock transition.

		Callbacks run with the session lock held and must not block.
		"""
		self._listeners.append(callback)

	def remove_listener(self, callback: Listener) -> None:
		if callback in self._listeners:
			self._listeners.remove(callback)

	def _notify(self, state: VaultState) -> None:
		for cb in list(self._listeners):
			cb(state)

	def _require(self, state: VaultState) -> None:
		current = self.state
		if current is not state:
			raise VaultStateError(f'Vault is {current.value}; operation needs {state.value}')

	# --- transitions ---

	def _open(self, password: str) -> tuple[bytes, List[DiaryEntry]]:
		"""Derive + decrypt the stored vault; any failure is one generic error."""
		try:
			salt, blob = self.store.get_salt(), self.store.get_cipher()
			if salt is None or blob is None:
				raise MalformedPayloadError('Incomplete vault')
			key = self.crypto.derive_key(password, salt)
			plain = self.crypto.decrypt(blob, key)
			entries = loads_entries(plain.decode('utf-8'))
		except (CryptoError, ValueError):
			raise AuthenticationError(GENERIC_AUTH_MESSAGE) from None
		return key, entries

	def _enter_unlocked(self, key: bytes, entries: List[DiaryEntry]) -> None:
		self._wipe()
		self._key = bytearray(key)
		self._entries = list(entries)
		try:
			self.store.set_locked(False)
		except StorageError as e:
			log.warning('Could not clear lock flag: %s', e)
		self._notify(VaultState.UNLOCKED)

	def unlock(self, password: str) -> List[DiaryEntry]:
		password = _clean(password)
		with self._mutex:
			self._require(VaultState.LOCKED)
			if not password:
				raise AuthenticationError(GENERIC_AUTH_MESSAGE)
			try:
				key, entries = self._open(password)
			except AuthenticationError:
				log.info('Unlock failed')
				raise
			self._enter_unlocked(key, entries)
			log.info('Vault unlocked (%d entries)', len(entries))
			return list(entries)

	def set_password(self, new_password: str, current_password: str | None = None) -> None:
		"""Create the vault, or re-encrypt it under `new_password` and a new salt.

		The new salt and blob are both computed before either is written.
		"""
		new_password, current_password = _clean(new_password), _clean(current_password)
		if len(new_password) < MIN_PASSWORD_LENGTH:
			raise PasswordPolicyError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters.')
		with self._mutex:
			if self.store.exists():
				if not current_password:
					raise AuthenticationError(GENERIC_AUTH_MESSAGE)
				_, entries = self._open(current_password)
				created = False
			else:
				entries, created = [], True
			salt = self.crypto.generate_salt()
			key = self.crypto.derive_key(new_password, salt)
			blob = self.crypto.encrypt(dumps_entries(entries).encode('utf-8'), key)
			self.store.replace_vault(b64encode(salt), b64encode(blob))
			self._touch_meta()
			self._enter_unlocked(key, entries)
			log.info('Vault %s', 'created' if created else 'password changed')

	def lock(self) -> None:
		with self._mutex:
			was_unlocked = self._key is not None
			self._wipe()
			try:
				if self.store.exists():
					self.store.set_locked(True)
			except StorageError as e:
				log.warning('Could not persist lock flag: %s', e)
			if was_unlocked:
				log.info('Vault locked')
				self._notify(VaultState.LOCKED)

	def close(self) -> None:
		self.lock()
		self._listeners.clear()

	def _wipe(self) -> None:
		if self._key is not None:
			for i in range(len(self._key)):
				self._key[i] = 0
		self._key = None
		self._entries = []

	# --- records ---

	def read_all(self) -> List[DiaryEntry]:
		with self._mutex:
			self._require(VaultState.UNLOCKED)
			return list(self._entries)

	def mutate(self, transform: Callable[[List[DiaryEntry]], List[DiaryEntry]]) -> List[DiaryEntry]:
		"""Apply `transform` to the entries, re-encrypt and persist the whole list.

		The cache only changes once the new blob is stored.
		"""
		with self._mutex:
			self._require(VaultState.UNLOCKED)
			new = list(transform(list(self._entries)))
			blob = self.crypto.encrypt(dumps_entries(new).encode('utf-8'), bytes(self._key))
			self.store.set_cipher(blob)
			self._entries = new
			self._touch_meta()
			return list(new)

	def add_entry(self, content: str, date_iso: str | None = None, title: str | None = None) -> DiaryEntry:
		entry = DiaryEntry.create(content, date_iso=date_iso, title=title)
		self.mutate(lambda es: records.add_entry(es, entry))
		return entry

	def update_entry(self, entry_id: str, **changes) -> DiaryEntry:
		new = self.mutate(lambda es: records.update_entry(es, entry_id, **changes))
		return records.find_entry(new, entry_id)

	def delete_entry(self, entry_id: str) -> None:
		self.mutate(lambda es: records.delete_entry(es, entry_id))

	def get_entry(self, entry_id: str) -> Optional[DiaryEntry]:
		return records.find_entry(self.read_all(), entry_id)

	def _touch_meta(self) -> None:
		try:
			self.store.touch_meta()
		except StorageError as e:
			log.warning('Could not update vault metadata: %s', e)

	# --- backups ---

	def export_backup(self) -> str:
		with self._mutex:
			return backup.export_backup(self.store)

	def import_backup(self, text: str) -> None:
		"""Replace the vault with a bundle; the session ends up LOCKED.

		A bundle that fails validation or cannot be written leaves the
		session as it was.
		"""
		with self._mutex:
			backup.import_backup(self.store, text)
			self.lock()
