"""Inactivity auto-lock for an unlocked VaultSession.

The guard knows nothing about input devices: callers feed it activity
pulses with `touch()`. While the session is unlocked exactly one timer is
armed; when it runs out the session is locked.
"""
from __future__ import annotations
import logging, threading, time
from typing import Callable, Optional
from config.settings import AUTO_LOCK_TIMEOUT
from .session import VaultSession, VaultState

log = logging.getLogger(__name__)

class InactivityGuard:
	def __init__(self, session: VaultSession, timeout: float = AUTO_LOCK_TIMEOUT,
			timer_factory: Callable[..., threading.Timer] = threading.Timer,
			clock: Callable[[], float] = time.monotonic):
		if timeout <= 0:
			raise ValueError('timeout must be positive')
		self.session = session
		self.timeout = timeout
		self._timer_factory = timer_factory
		self._clock = clock
		self._mutex = threading.Lock()
		self._timer = None
		self._generation = 0
		self._deadline: Optional[float] = None
		session.add_listener(self._on_state)
		if session.is_unlocked:
			self.touch()

	def _on_state(self, state: VaultState) -> None:
		if state is VaultState.UNLOCKED:
			self._arm()
		else:
			self._disarm()

	def _arm(self) -> None:
		with self._mutex:
			# a lock may have landed since the caller looked
			if not self.session.is_unlocked:
				return
			self._cancel_timer()
			self._generation += 1
			gen = self._generation
			self._deadline = self._clock() + self.timeout
			t = self._timer_factory(self.timeout, self._fire, args=(gen,))
			t.daemon = True
			self._timer = t
			t.start()

	def _disarm(self) -> None:
		with self._mutex:
			self._cancel_timer()
			self._generation += 1
			self._deadline = None

	def _cancel_timer(self) -> None:
		if self._timer is not None:
			self._timer.cancel()
			self._timer = None

	def _fire(self, gen: int) -> None:
		with self._mutex:
			if gen != self._generation or self._deadline is None:
				return  # superseded by a later touch or a lock
			self._timer = None
			self._deadline = None
		log.info('Locking vault after %.0fs of inactivity', self.timeout)
		self.session.lock()

	def touch(self) -> None:
		"""Activity pulse: push the deadline back. Ignored unless unlocked."""
		if self.session.is_unlocked:
			self._arm()

	def remaining(self) -> Optional[float]:
		with self._mutex:
			if self._deadline is None: return None
			return max(0.0, self._deadline - self._clock())

	@property
	def armed(self) -> bool:
		return self._deadline is not None

	def expire(self) -> None:
		"""Force the timeout now."""
		self._disarm()
		self.session.lock()

	def stop(self) -> None:
		self.session.remove_listener(self._on_state)
		self._disarm()
