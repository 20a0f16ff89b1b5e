import json
import re
from click.testing import CliRunner
from diaryvault.cli.commands import cli

PW = 'correct-horse'

def added_id(output):
    return re.search(r'Added entry (\S+)\.', output).group(1)

def test_cli_init_and_status(monkeypatch, tmp_path):
    monkeypatch.setenv('DIARY_VAULT_PATH', str(tmp_path / 'diary.json'))
    runner = CliRunner()
    assert 'no vault' in runner.invoke(cli, ['status']).output
    r = runner.invoke(cli, ['init'], input=f'{PW}\n{PW}\n')
    assert r.exit_code == 0
    assert 'Vault created' in r.output
    r2 = runner.invoke(cli, ['status'])
    assert r2.exit_code == 0
    assert 'locked' in r2.output and 'Last updated' in r2.output
    again = runner.invoke(cli, ['init'], input=f'{PW}\n{PW}\n')
    assert again.exit_code == 1 and 'Vault exists' in again.output

def test_cli_short_password(monkeypatch, tmp_path):
    monkeypatch.setenv('DIARY_VAULT_PATH', str(tmp_path / 'diary.json'))
    r = CliRunner().invoke(cli, ['init'], input='pw\npw\n')
    assert r.exit_code == 1 and 'at least 6' in r.output

def test_cli_add_list_show_edit_delete(monkeypatch, tmp_path):
    monkeypatch.setenv('DIARY_VAULT_PATH', str(tmp_path / 'diary.json'))
    runner = CliRunner()
    runner.invoke(cli, ['init'], input=f'{PW}\n{PW}\n')
    add = runner.invoke(cli, ['add', '--title', 'Monday', '--date', '2024-01-01'], input=f'{PW}\nMonday note\n')
    assert add.exit_code == 0
    eid = added_id(add.output)
    lst = runner.invoke(cli, ['list'], input=f'{PW}\n')
    assert lst.exit_code == 0
    assert eid in lst.output and 'Monday' in lst.output
    edit = runner.invoke(cli, ['edit', eid, '--content', 'Edited note'], input=f'{PW}\n')
    assert edit.exit_code == 0
    show = runner.invoke(cli, ['show', eid], input=f'{PW}\n')
    assert 'Edited note' in show.output and '2024-01-01' in show.output
    assert 'Monday note' not in (tmp_path / 'diary.json').read_text()
    delete = runner.invoke(cli, ['delete', eid, '--yes'], input=f'{PW}\n')
    assert delete.exit_code == 0
    assert 'No entries' in runner.invoke(cli, ['list'], input=f'{PW}\n').output
    missing = runner.invoke(cli, ['show', eid], input=f'{PW}\n')
    assert missing.exit_code == 1 and 'Not found' in missing.output

def test_cli_wrong_password(monkeypatch, tmp_path):
    monkeypatch.setenv('DIARY_VAULT_PATH', str(tmp_path / 'diary.json'))
    runner = CliRunner()
    runner.invoke(cli, ['init'], input=f'{PW}\n{PW}\n')
    r = runner.invoke(cli, ['list'], input='wrong-pass\n')
    assert r.exit_code == 1
    assert 'Wrong password or invalid data.' in r.output

def test_cli_passwd(monkeypatch, tmp_path):
    monkeypatch.setenv('DIARY_VAULT_PATH', str(tmp_path / 'diary.json'))
    runner = CliRunner()
    runner.invoke(cli, ['init'], input=f'{PW}\n{PW}\n')
    runner.invoke(cli, ['add'], input=f'{PW}\nkept\n')
    r = runner.invoke(cli, ['passwd'], input=f'{PW}\nbattery-staple\nbattery-staple\n')
    assert r.exit_code == 0 and 'Password changed' in r.output
    assert runner.invoke(cli, ['list'], input=f'{PW}\n').exit_code == 1
    assert runner.invoke(cli, ['list'], input='battery-staple\n').exit_code == 0

def test_cli_export_import(monkeypatch, tmp_path):
    monkeypatch.setenv('DIARY_VAULT_PATH', str(tmp_path / 'diary.json'))
    runner = CliRunner()
    runner.invoke(cli, ['init'], input=f'{PW}\n{PW}\n')
    runner.invoke(cli, ['add'], input=f'{PW}\ncaptured\n')
    dest = tmp_path / 'backup.json'
    exp = runner.invoke(cli, ['export', str(dest)])
    assert exp.exit_code == 0
    assert set(json.loads(dest.read_text())) == {'salt', 'cipher'}
    runner.invoke(cli, ['add'], input=f'{PW}\nlater\n')
    imp = runner.invoke(cli, ['import', str(dest), '--yes'])
    assert imp.exit_code == 0
    lst = runner.invoke(cli, ['list'], input=f'{PW}\n')
    assert lst.output.count('(untitled)') == 1
    bad = tmp_path / 'bad.json'; bad.write_text('{}')
    assert runner.invoke(cli, ['import', str(bad), '--yes']).exit_code == 1

def test_cli_export_without_vault(monkeypatch, tmp_path):
    monkeypatch.setenv('DIARY_VAULT_PATH', str(tmp_path / 'diary.json'))
    r = CliRunner().invoke(cli, ['export', str(tmp_path / 'b.json')])
    assert r.exit_code == 1 and 'No vault' in r.output

def test_cli_warns_about_weak_password(monkeypatch, tmp_path):
    monkeypatch.setenv('DIARY_VAULT_PATH', str(tmp_path / 'diary.json'))
    runner = CliRunner()
    weak = runner.invoke(cli, ['init'], input='aaaaaa\naaaaaa\n')
    assert weak.exit_code == 0 and 'Warning: weak password' in weak.output
    r = runner.invoke(cli, ['passwd'], input=f'aaaaaa\n{PW}\n{PW}\n')
    assert r.exit_code == 0 and 'Warning' not in r.output
