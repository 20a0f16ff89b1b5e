"""Cryptographic primitives: PBKDF2 key derivation + AES-256-GCM.

Payload layout produced by `VaultCrypto.encrypt`:

	nonce (12 bytes) || ciphertext || GCM tag (16 bytes)

A failed tag check is the only signal for both a wrong password and a
tampered payload; the two are deliberately not told apart.
"""
from __future__ import annotations
import base64, binascii, secrets
from typing import Tuple
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.backends import default_backend
from config.settings import (
	DEFAULT_ITERATIONS, SALT_LENGTH, KEY_LENGTH, NONCE_LENGTH, AUTH_TAG_LENGTH, MIN_PASSWORD_LENGTH
)

class CryptoError(Exception):
	pass

class AuthenticationError(CryptoError):
	"""Tag verification failed: wrong key or corrupted data."""

class MalformedPayloadError(CryptoError):
	"""Payload too short or not decodable; decryption was not attempted."""

def generate_salt() -> bytes:
	return secrets.token_bytes(SALT_LENGTH)

class VaultCrypto:
	def __init__(self, iterations: int = DEFAULT_ITERATIONS):
		self._backend = default_backend()
		self.iterations = iterations

	def generate_salt(self) -> bytes:
		return generate_salt()

	def derive_key(self, password: str | bytes, salt: bytes) -> bytes:
		"""PBKDF2-HMAC-SHA256 -> 32-byte key. Same inputs, same key."""
		if len(salt) != SALT_LENGTH:
			raise ValueError(f"Salt must be {SALT_LENGTH} bytes")
		if isinstance(password, str):
			password = password.encode('utf-8')
		kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=KEY_LENGTH, salt=salt, iterations=self.iterations, backend=self._backend)
		return kdf.derive(password)

	def encrypt(self, data: bytes, key: bytes) -> bytes:
		if len(key) != KEY_LENGTH: raise ValueError("Bad key length")
		# a new nonce per call; never reuse one under the same key
		nonce = secrets.token_bytes(NONCE_LENGTH)
		cipher = Cipher(algorithms.AES(key), modes.GCM(nonce), backend=self._backend)
		enc = cipher.encryptor()
		ct = enc.update(data) + enc.finalize()
		return nonce + ct + enc.tag

	def decrypt(self, blob: bytes, key: bytes) -> bytes:
		if len(key) != KEY_LENGTH: raise ValueError("Bad key length")
		if len(blob) < NONCE_LENGTH + AUTH_TAG_LENGTH:
			raise MalformedPayloadError("Ciphertext too short")
		nonce, ct, tag = split_payload(blob)
		cipher = Cipher(algorithms.AES(key), modes.GCM(nonce, tag), backend=self._backend)
		dec = cipher.decryptor()
		try:
			return dec.update(ct) + dec.finalize()
		except InvalidTag:
			raise AuthenticationError("Decryption failed") from None

	def encrypt_text(self, text: str, key: bytes) -> str:
		return b64encode(self.encrypt(text.encode('utf-8'), key))

	def decrypt_text(self, token: str, key: bytes) -> str:
		plain = self.decrypt(b64decode(token), key)
		try:
			return plain.decode('utf-8')
		except UnicodeDecodeError:
			raise MalformedPayloadError("Plaintext is not UTF-8") from None

def split_payload(blob: bytes) -> Tuple[bytes, bytes, bytes]:
	return blob[:NONCE_LENGTH], blob[NONCE_LENGTH:-AUTH_TAG_LENGTH], blob[-AUTH_TAG_LENGTH:]

def b64encode(raw: bytes) -> str:
	return base64.b64encode(raw).decode('ascii')

def b64decode(text: str) -> bytes:
	try:
		return base64.b64decode(text.encode('ascii'), validate=True)
	except (binascii.Error, UnicodeEncodeError, ValueError):
		raise MalformedPayloadError("Invalid base64 data") from None

STRENGTH_LABELS = ((80, 'Very Strong'), (60, 'Strong'), (40, 'Moderate'), (20, 'Weak'), (0, 'Very Weak'))
COMMON_FRAGMENTS = ('password', 'qwerty', '1234', 'abcd', 'diary', 'letmein')

def check_password_strength(password: str) -> Tuple[int, str]:
	"""Rough 0-100 score and a one-line verdict. Advice only, never enforced."""
	password = password.strip()
	n = len(password)
	hints = []
	score = min(n, 16) * 3
	if n < MIN_PASSWORD_LENGTH:
		hints.append(f'shorter than {MIN_PASSWORD_LENGTH} characters')
	elif n < 12:
		hints.append('12 or more characters is better')
	classes = sum((
		any(c.islower() for c in password),
		any(c.isupper() for c in password),
		any(c.isdigit() for c in password),
		any(not c.isalnum() for c in password),
	))
	score += classes * 10
	if classes < 3:
		hints.append('mix letters, digits and symbols')
	if n and len(set(password)) <= n // 2:
		score -= 15; hints.append('many repeated characters')
	if any(f in password.lower() for f in COMMON_FRAGMENTS):
		score -= 20; hints.append('contains a common word or sequence')
	score = max(0, min(100, score))
	label = next(name for floor, name in STRENGTH_LABELS if score >= floor)
	text = f"{label} ({score}/100)"
	if hints: text += ' - ' + ', '.join(hints)
	return score, text
