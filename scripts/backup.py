"""Simple backup utility script.

Writes the encrypted backup bundle (salt + cipher only) into a directory,
one dated file per day.

Usage (from repo root):
  python -m scripts.backup --dest backups/
"""
from __future__ import annotations
from pathlib import Path
import click
from config import settings
from diaryvault.lib.backup import NoVaultError, write_backup_file
from diaryvault.lib.storage import FileKeyValueStore, VaultRecordStore, StorageError

@click.command()
@click.option('--dest', type=click.Path(file_okay=False, path_type=Path), default=Path('backups'), help='Destination directory for backups.')
def main(dest: Path):
	dest.mkdir(parents=True, exist_ok=True)
	vault_path = settings.vault_path()
	store = VaultRecordStore(FileKeyValueStore(vault_path))
	try:
		target = write_backup_file(store, dest)
	except (NoVaultError, StorageError) as e:
		click.echo(f"No vault at {vault_path}; nothing to backup ({e}).")
		raise SystemExit(1)
	click.echo(f"Backup written: {target}")

if __name__ == '__main__':  # pragma: no cover
	main()
