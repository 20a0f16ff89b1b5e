import json
import base64
from datetime import date
import pytest
from config.settings import META_KEY, LOCK_KEY
from diaryvault.lib.backup import (
    BackupFormatError, NoVaultError, backup_filename, export_backup, import_backup,
    parse_backup, read_backup_file, write_backup_file
)
from diaryvault.lib.storage import MemoryKeyValueStore, VaultRecordStore

SALT = base64.b64encode(b's' * 16).decode()
CIPHER = base64.b64encode(b'c' * 40).decode()

def make_vault():
    kv = MemoryKeyValueStore(); vs = VaultRecordStore(kv)
    vs.replace_vault(SALT, CIPHER)
    vs.touch_meta(); vs.set_locked(True)
    return kv, vs

def test_export_has_exactly_salt_and_cipher():
    _, vs = make_vault()
    assert json.loads(export_backup(vs)) == {'salt': SALT, 'cipher': CIPHER}

def test_export_without_vault():
    with pytest.raises(NoVaultError):
        export_backup(VaultRecordStore(MemoryKeyValueStore()))

def test_import_replaces_wholesale():
    kv, vs = make_vault()
    other_salt = base64.b64encode(b't' * 16).decode()
    other_cipher = base64.b64encode(b'd' * 30).decode()
    import_backup(vs, json.dumps({'salt': other_salt, 'cipher': other_cipher}))
    assert vs.get_salt_text() == other_salt and vs.get_cipher_text() == other_cipher
    assert kv.get(META_KEY) and kv.get(LOCK_KEY) == '1'

@pytest.mark.parametrize('text', [
    'not json',
    '[]',
    '{"salt": "AAAA"}',
    '{"salt": 1, "cipher": "AAAA"}',
    json.dumps({'salt': '%%%', 'cipher': CIPHER}),
    json.dumps({'salt': base64.b64encode(b'short').decode(), 'cipher': CIPHER}),
    json.dumps({'salt': SALT, 'cipher': base64.b64encode(b'c' * 27).decode()}),
])
def test_invalid_bundles_do_not_touch_storage(text):
    kv, vs = make_vault()
    before = dict(kv.data)
    with pytest.raises(BackupFormatError):
        import_backup(vs, text)
    assert kv.data == before

def test_parse_ignores_extra_fields():
    bundle = parse_backup(json.dumps({'salt': SALT, 'cipher': CIPHER, 'note': 'x'}))
    assert bundle == {'salt': SALT, 'cipher': CIPHER}

def test_backup_files(tmp_path):
    _, vs = make_vault()
    assert backup_filename(date(2024, 3, 9)) == 'diary-backup-2024-03-09.json'
    written = write_backup_file(vs, tmp_path)
    assert written.parent == tmp_path and written.name.startswith('diary-backup-')
    assert parse_backup(read_backup_file(written)) == {'salt': SALT, 'cipher': CIPHER}
    with pytest.raises(BackupFormatError):
        read_backup_file(tmp_path / 'missing.json')
