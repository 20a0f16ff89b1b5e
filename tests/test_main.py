from click.testing import CliRunner
from diaryvault.cli.commands import cli

def test_cli_help():
	r = CliRunner().invoke(cli, ['--help'])
	assert r.exit_code == 0
	assert 'init' in r.output and 'shell' in r.output


def test_shell_creates_vault_and_locks_on_exit(monkeypatch, tmp_path):
	monkeypatch.setenv('DIARY_VAULT_PATH', str(tmp_path / 'diary.json'))
	runner = CliRunner()
	script = '\n'.join([
		'correct-horse', 'correct-horse',          # new vault
		'add', '2024-01-01', 'Monday', 'Monday note',
		'list',
		'status',
		'quit',
	]) + '\n'
	r = runner.invoke(cli, ['shell'], input=script)
	assert r.exit_code == 0
	assert 'Added entry' in r.output
	assert 'Monday' in r.output
	assert 'auto-lock in' in r.output
	st = runner.invoke(cli, ['status'])
	assert 'State: locked' in st.output


def test_shell_retries_wrong_password(monkeypatch, tmp_path):
	monkeypatch.setenv('DIARY_VAULT_PATH', str(tmp_path / 'diary.json'))
	runner = CliRunner()
	runner.invoke(cli, ['init'], input='correct-horse\ncorrect-horse\n')
	r = runner.invoke(cli, ['shell'], input='wrong-pass\ncorrect-horse\nlist\nquit\n')
	assert r.exit_code == 0
	assert 'Wrong password or invalid data.' in r.output


def test_shell_lock_command(monkeypatch, tmp_path):
	monkeypatch.setenv('DIARY_VAULT_PATH', str(tmp_path / 'diary.json'))
	runner = CliRunner()
	runner.invoke(cli, ['init'], input='correct-horse\ncorrect-horse\n')
	r = runner.invoke(cli, ['shell'], input='correct-horse\nlock\ncorrect-horse\nbogus\nquit\n')
	assert r.exit_code == 0
	assert 'Unknown command' in r.output
