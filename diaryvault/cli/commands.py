"""CLI commands implemented with click.

Each command runs in its own process, so the vault is unlocked for the
duration of one command only. `shell` keeps a session open and relies on
the inactivity guard to lock it again.
"""
from __future__ import annotations
import logging, shlex
from contextlib import contextmanager
from pathlib import Path
import click
from config import settings
from diaryvault.lib.backup import BackupFormatError, NoVaultError, backup_filename, read_backup_file, write_backup_file
from diaryvault.lib.crypto import CryptoError, check_password_strength
from diaryvault.lib.guard import InactivityGuard
from diaryvault.lib.records import EntryError, sorted_for_display, today_iso
from diaryvault.lib.session import VaultSession, VaultState, VaultStateError, PasswordPolicyError
from diaryvault.lib.storage import FileKeyValueStore, VaultRecordStore, StorageError

VAULT_ERRORS = (CryptoError, StorageError, EntryError, BackupFormatError, NoVaultError, VaultStateError, PasswordPolicyError)

def open_session() -> VaultSession:
	return VaultSession(VaultRecordStore(FileKeyValueStore(settings.vault_path())))

@contextmanager
def vault_errors():
	try:
		yield
	except VAULT_ERRORS as e:
		raise click.ClickException(str(e))

@contextmanager
def unlocked(password: str):
	with vault_errors(), open_session() as vs:
		vs.unlock(password)
		yield vs

def warn_if_weak(password: str) -> None:
	score, verdict = check_password_strength(password)
	if score < settings.WEAK_PASSWORD_SCORE:
		click.echo(f'Warning: weak password: {verdict}', err=True)

def format_entry(e, full: bool = False) -> str:
	head = f"{e.id}  {e.date_iso}  {e.title or '(untitled)'}"
	if not full: return head
	return f"{head}\nCreated: {e.created_at}\nUpdated: {e.updated_at}\n---\n{e.content}"

@click.group()
@click.option('-v', '--verbose', is_flag=True, help='Debug logging.')
def cli(verbose):
	"""diaryvault: an encrypted diary"""
	logging.basicConfig(level=logging.DEBUG if verbose else settings.LOG_LEVEL,
		format='%(asctime)s %(name)s %(levelname)s: %(message)s')

@cli.command()
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--force', is_flag=True, help='Replace an existing vault (its entries are lost).')
def init(password, force):
	"""Create a new encrypted diary."""
	path = settings.vault_path()
	with vault_errors():
		vs = open_session()
		if vs.state is not VaultState.NO_VAULT:
			if not force:
				raise click.ClickException('Vault exists (use --force to replace it, or passwd to change the password)')
			path.unlink(missing_ok=True)
		vs.set_password(password)
		vs.close()
	click.echo('Vault created.')
	warn_if_weak(password)

@cli.command()
@click.option('--current', prompt='Current password', hide_input=True)
@click.option('--new', 'new_password', prompt='New password', hide_input=True, confirmation_prompt=True)
def passwd(current, new_password):
	"""Change the diary password (re-encrypts under a new salt)."""
	with vault_errors(), open_session() as vs:
		if vs.state is VaultState.NO_VAULT:
			raise click.ClickException('No vault; run init first')
		vs.set_password(new_password, current)
	click.echo('Password changed.')
	warn_if_weak(new_password)

@cli.command()
def status():
	"""Show whether a vault exists and when it last changed."""
	with vault_errors():
		vs = open_session()
		click.echo(f'State: {vs.state.value}')
		if vs.state is not VaultState.NO_VAULT:
			click.echo(f'Last updated: {vs.last_updated or "-"}')
			click.echo(f'Lock flag: {"set" if vs.store.is_locked() else "clear"}')
			click.echo(f'Path: {settings.vault_path()}')

@cli.command()
@click.option('--password', prompt=True, hide_input=True)
@click.option('--date', 'date_iso', default=today_iso, show_default='today', help='YYYY-MM-DD')
@click.option('--title', default='')
@click.option('--content', prompt=True)
def add(password, date_iso, title, content):
	"""Add a diary entry."""
	with unlocked(password) as vs:
		e = vs.add_entry(content, date_iso=date_iso, title=title)
	click.echo(f'Added entry {e.id}.')

@cli.command('list')
@click.option('--password', prompt=True, hide_input=True)
def list_entries(password):
	with unlocked(password) as vs:
		items = sorted_for_display(vs.read_all())
	if not items:
		click.echo('No entries.')
	for e in items:
		click.echo(format_entry(e))

@cli.command()
@click.argument('entry_id')
@click.option('--password', prompt=True, hide_input=True)
def show(entry_id, password):
	"""Show full content of an entry by ID."""
	with unlocked(password) as vs:
		e = vs.get_entry(entry_id)
	if e is None:
		raise click.ClickException('Not found')
	click.echo(format_entry(e, full=True))

@cli.command()
@click.argument('entry_id')
@click.option('--password', prompt=True, hide_input=True)
@click.option('--date', 'date_iso', default=None)
@click.option('--title', default=None, help="Use '' to clear.")
@click.option('--content', default=None)
def edit(entry_id, password, date_iso, title, content):
	"""Edit an entry; only the given fields change."""
	if date_iso is None and title is None and content is None:
		raise click.UsageError('Nothing to change (use --date, --title or --content)')
	with unlocked(password) as vs:
		vs.update_entry(entry_id, content=content, date_iso=date_iso, title=title)
	click.echo(f'Updated entry {entry_id}.')

@cli.command()
@click.argument('entry_id')
@click.option('--password', prompt=True, hide_input=True)
@click.option('--yes', is_flag=True, help='Do not ask for confirmation.')
def delete(entry_id, password, yes):
	if not yes:
		click.confirm('Delete this entry?', abort=True)
	with unlocked(password) as vs:
		vs.delete_entry(entry_id)
	click.echo(f'Deleted entry {entry_id}.')

@cli.command('export')
@click.argument('dest', required=False, type=click.Path(path_type=Path))
def export_cmd(dest):
	"""Write the encrypted backup bundle (no password needed)."""
	with vault_errors():
		target = write_backup_file(open_session().store, dest or Path(backup_filename()))
	click.echo(f'Backup written: {target}')

@cli.command('import')
@click.argument('src', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--yes', is_flag=True, help='Do not ask for confirmation.')
def import_cmd(src, yes):
	"""Replace the diary with a backup bundle."""
	if not yes:
		click.confirm('This will replace all current diary data. Continue?', abort=True)
	with vault_errors(), open_session() as vs:
		vs.import_backup(read_backup_file(src))
	click.echo('Backup imported. Unlock with the password that was valid when it was made.')

@cli.command()
def lock():
	"""Set the persisted lock flag."""
	with vault_errors(), open_session() as vs:
		vs.lock()
	click.echo('Locked.')

@cli.command('pw-strength')
@click.argument('password')
def pw_strength_cmd(password):
	score, fb = check_password_strength(password)
	click.echo(f"Score: {score} -> {fb}")

# --- interactive shell ---

SHELL_HELP = """Commands:
  list                 list entries
  show ID              print an entry
  add                  add an entry (prompts)
  edit ID              edit content of an entry (prompts)
  delete ID            delete an entry
  lock                 lock now
  status               auto-lock countdown
  quit                 lock and exit"""

def _shell_unlock(vs: VaultSession) -> None:
	if vs.state is VaultState.NO_VAULT:
		vs.set_password(click.prompt('New password', hide_input=True, confirmation_prompt=True))
	else:
		vs.unlock(click.prompt('Password', hide_input=True))

def _shell_step(vs: VaultSession, guard: InactivityGuard, line: str) -> bool:
	args = shlex.split(line)
	if not args: return True
	cmd, rest = args[0], args[1:]
	if cmd in ('quit', 'exit'):
		return False
	if cmd == 'help':
		click.echo(SHELL_HELP)
	elif cmd == 'list':
		for e in sorted_for_display(vs.read_all()):
			click.echo(format_entry(e))
	elif cmd == 'show' and rest:
		e = vs.get_entry(rest[0])
		click.echo(format_entry(e, full=True) if e else 'Not found')
	elif cmd == 'add':
		date_iso = click.prompt('Date', default=today_iso())
		title = click.prompt('Title', default='', show_default=False)
		content = click.prompt('Content')
		click.echo(f'Added entry {vs.add_entry(content, date_iso=date_iso, title=title).id}.')
	elif cmd == 'edit' and rest:
		vs.update_entry(rest[0], content=click.prompt('Content'))
		click.echo('Updated.')
	elif cmd == 'delete' and rest:
		vs.delete_entry(rest[0])
		click.echo('Deleted.')
	elif cmd == 'lock':
		vs.lock()
	elif cmd == 'status':
		left = guard.remaining()
		click.echo(f'{vs.state.value}' + (f', auto-lock in {left:.0f}s' if left is not None else ''))
	else:
		click.echo(f'Unknown command: {line} (try help)')
	return True

@cli.command()
@click.option('--timeout', type=float, default=None, help='Auto-lock after this many idle seconds.')
def shell(timeout):
	"""Interactive session; locks itself after a period of inactivity."""
	vs = open_session()
	guard = InactivityGuard(vs, timeout=timeout or settings.auto_lock_timeout())
	try:
		while True:
			if not vs.is_unlocked:
				try:
					_shell_unlock(vs)
				except VAULT_ERRORS as e:
					click.echo(f'Error: {e}')
					continue
			line = click.prompt('diary', prompt_suffix='> ', default='', show_default=False)
			if not vs.is_unlocked:
				click.echo('Locked after inactivity.')
				continue
			guard.touch()
			try:
				if not _shell_step(vs, guard, line):
					break
			except (ValueError, *VAULT_ERRORS) as e:
				click.echo(f'Error: {e}')
	finally:
		guard.stop()
		vs.close()
