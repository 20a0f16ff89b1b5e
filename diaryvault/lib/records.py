"""Diary entries and the list transforms applied while a vault is unlocked.

Entries never exist on their own in storage: the whole list is serialized to
JSON and encrypted as one blob. The JSON keys (`dateISO`, `createdAt`, ...)
are the on-disk format and are kept stable.
"""
from __future__ import annotations
import json, uuid
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional
from config.settings import MAX_ENTRY_SIZE

class EntryError(Exception): ...

_REQUIRED = ('id', 'dateISO', 'content', 'createdAt', 'updatedAt')

def _now() -> str:
	return datetime.now(timezone.utc).isoformat()

def today_iso() -> str:
	return date.today().isoformat()

def _check_date(value: str) -> str:
	try:
		return date.fromisoformat(value).isoformat()
	except (TypeError, ValueError):
		raise EntryError(f'Invalid date: {value!r} (expected YYYY-MM-DD)') from None

def _clean_content(content: str) -> str:
	content = (content or '').strip()
	if not content: raise EntryError('Content cannot be empty')
	if len(content.encode()) > MAX_ENTRY_SIZE: raise EntryError('Content too large')
	return content

def _clean_title(title: Optional[str]) -> Optional[str]:
	title = (title or '').strip()
	return title or None

@dataclass(frozen=True)
class DiaryEntry:
	id: str
	date_iso: str
	content: str
	created_at: str
	updated_at: str
	title: Optional[str] = None

	@classmethod
	def create(cls, content: str, date_iso: str | None = None, title: str | None = None) -> 'DiaryEntry':
		now = _now()
		return cls(
			id=str(uuid.uuid4()),
			date_iso=_check_date(date_iso or today_iso()),
			content=_clean_content(content),
			created_at=now,
			updated_at=now,
			title=_clean_title(title),
		)

	def edited(self, content: str | None = None, date_iso: str | None = None, title: str | None = None) -> 'DiaryEntry':
		"""Copy with the given fields changed; `title=''` clears the title."""
		return replace(
			self,
			content=self.content if content is None else _clean_content(content),
			date_iso=self.date_iso if date_iso is None else _check_date(date_iso),
			title=self.title if title is None else _clean_title(title),
			updated_at=_now(),
		)

	def to_dict(self) -> Dict[str, Any]:
		d: Dict[str, Any] = {'id': self.id, 'dateISO': self.date_iso}
		if self.title is not None:
			d['title'] = self.title
		d.update(content=self.content, updatedAt=self.updated_at, createdAt=self.created_at)
		return d

	@classmethod
	def from_dict(cls, raw: Dict[str, Any]) -> 'DiaryEntry':
		title = raw.get('title')
		return cls(
			id=raw['id'], date_iso=raw['dateISO'], content=raw['content'],
			created_at=raw['createdAt'], updated_at=raw['updatedAt'],
			title=title if isinstance(title, str) else None,
		)

def _is_entry(x: Any) -> bool:
	return isinstance(x, dict) and all(isinstance(x.get(k), str) for k in _REQUIRED)

def dumps_entries(entries: List[DiaryEntry]) -> str:
	return json.dumps([e.to_dict() for e in entries])

def loads_entries(text: str) -> List[DiaryEntry]:
	"""Parse decrypted JSON. Non-arrays give [], malformed items are skipped.

	Raises ValueError if `text` is not JSON at all.
	"""
	parsed = json.loads(text)
	if not isinstance(parsed, list): return []
	return [DiaryEntry.from_dict(x) for x in parsed if _is_entry(x)]

# --- list transforms (pure; used with VaultSession.mutate) ---

def _index(entries: List[DiaryEntry], entry_id: str) -> int:
	for i, e in enumerate(entries):
		if e.id == entry_id: return i
	raise EntryError('Entry not found')

def add_entry(entries: List[DiaryEntry], entry: DiaryEntry) -> List[DiaryEntry]:
	return [entry] + list(entries)

def update_entry(entries: List[DiaryEntry], entry_id: str, **changes) -> List[DiaryEntry]:
	i = _index(entries, entry_id)
	out = list(entries)
	out[i] = out[i].edited(**changes)
	return out

def delete_entry(entries: List[DiaryEntry], entry_id: str) -> List[DiaryEntry]:
	i = _index(entries, entry_id)
	return entries[:i] + entries[i + 1:]

def find_entry(entries: List[DiaryEntry], entry_id: str) -> Optional[DiaryEntry]:
	return next((e for e in entries if e.id == entry_id), None)

def sorted_for_display(entries: List[DiaryEntry]) -> List[DiaryEntry]:
	return sorted(entries, key=lambda e: (e.date_iso, e.updated_at), reverse=True)
