"""Tests for the commit helper, the repository file copier and the cleanup script."""

import pytest
import io
import os
import json
import logging
import subprocess
from pathlib import Path
from unittest.mock import Mock, patch

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from matterbuild import __version__
from matterbuild import clean as clean_script
from matterbuild import commit as commit_script
from matterbuild import repo_files
from matterbuild.errors import CommitError

# 2023-01-01 12:00:00 UTC
TIMESTAMP = 1672574400


class BlockingInput:
    """A stdin stand-in that never returns a line."""

    def readline(self):
        import threading
        threading.Event().wait(5)
        return ''


class TestCommitMessage:

    def test_update_message(self):
        assert commit_script.update_message('1.2.3', TIMESTAMP) == (
            'Update in version 1.2.3 on Sun, 01 Jan 2023 12:00:00 GMT'
        )

    def test_version_from_pyproject(self, temp_dir):
        Path(temp_dir, 'pyproject.toml').write_text('[project]\nname = "x"\nversion = "2.0.1"\n')
        assert commit_script.project_version(temp_dir) == '2.0.1'

    def test_version_from_package_json(self, temp_dir):
        Path(temp_dir, 'package.json').write_text('{"version": "3.1.0"}')
        assert commit_script.project_version(temp_dir) == '3.1.0'

    def test_version_fallback(self, temp_dir):
        assert commit_script.project_version(temp_dir) == __version__

    def test_default_message(self, temp_dir):
        Path(temp_dir, 'package.json').write_text('{"version": "3.1.0"}')
        assert commit_script.default_message(temp_dir, timestamp=TIMESTAMP) == (
            'chore(build): Update in version 3.1.0 on Sun, 01 Jan 2023 12:00:00 GMT'
        )

    def test_prefix_from_config_file(self, temp_dir):
        Path(temp_dir, 'git-commit.config.json').write_text(json.dumps({'message': 'build:'}))
        message = commit_script.default_message(temp_dir, timestamp=TIMESTAMP)
        assert message.startswith('build: Update in version ')

    def test_explicit_prefix(self, temp_dir):
        Path(temp_dir, 'git-commit.config.json').write_text(json.dumps({'message': 'build:'}))
        message = commit_script.default_message(temp_dir, 'docs:', TIMESTAMP)
        assert message.startswith('docs: Update in version ')

    def test_broken_config_file(self, temp_dir):
        Path(temp_dir, 'git-commit.config.json').write_text('not json')
        assert commit_script.default_message(temp_dir).startswith('chore(build): ')


class TestPrompt:

    def test_line_is_used(self):
        stdout = io.StringIO()
        message = commit_script.prompt_message('default', 1, io.StringIO('my message\n'), stdout)
        assert message == 'my message'
        assert 'Enter the commit message. [default]:' in stdout.getvalue()

    def test_empty_line_uses_default(self):
        assert commit_script.prompt_message('default', 1, io.StringIO('\n'), io.StringIO()) == 'default'

    def test_timeout_uses_default(self):
        stdout = io.StringIO()
        message = commit_script.prompt_message('default', 0.05, BlockingInput(), stdout)
        assert message == 'default'
        assert 'No input provided. Using default message: "default"' in stdout.getvalue()


class TestCommit:

    @patch('matterbuild.commit.subprocess.run')
    def test_commit(self, mock_run):
        mock_run.return_value = Mock(returncode=0, stdout='[main abc123] msg\n', stderr='')
        assert commit_script.commit('msg', cwd='/repo') == '[main abc123] msg\n'
        mock_run.assert_called_once_with(
            ['git', 'commit', '-m', 'msg'],
            cwd='/repo',
            capture_output=True,
            text=True,
        )

    @patch('matterbuild.commit.subprocess.run')
    def test_commit_stderr_is_logged(self, mock_run, caplog):
        mock_run.return_value = Mock(returncode=0, stdout='ok', stderr='hint: something')
        with caplog.at_level(logging.WARNING):
            commit_script.commit('msg')
        assert 'Git Output: hint: something' in caplog.text

    @patch('matterbuild.commit.subprocess.run')
    def test_commit_failure(self, mock_run):
        mock_run.return_value = Mock(returncode=1, stdout='nothing to commit', stderr='')
        with pytest.raises(CommitError) as exc_info:
            commit_script.commit('msg')
        assert 'nothing to commit' in str(exc_info.value)

    @patch('matterbuild.commit.subprocess.run', side_effect=FileNotFoundError('git'))
    def test_git_missing(self, mock_run):
        with pytest.raises(CommitError) as exc_info:
            commit_script.commit('msg')
        assert 'cannot run git' in str(exc_info.value)

    def test_message_with_quotes_is_one_argument(self):
        with patch.object(subprocess, 'run') as mock_run:
            mock_run.return_value = Mock(returncode=0, stdout='', stderr='')
            commit_script.commit('fix "quoted" $HOME')
        assert mock_run.call_args[0][0][-1] == 'fix "quoted" $HOME'


@pytest.fixture
def repo_layout(temp_dir, monkeypatch):
    """A checked-out repository under repo/ and a copier config."""
    monkeypatch.chdir(temp_dir)
    shared = Path(temp_dir, 'repo', 'shared')
    (shared / 'lint').mkdir(parents=True)
    (shared / '.editorconfig').write_text('root = true\n')
    (shared / 'lint' / 'flake8.cfg').write_text('[flake8]\n')
    Path(temp_dir, 'copy.repo.config.json').write_text(
        '{\n'
        '  // files from repo/shared\n'
        '  repository: "shared",\n'
        '  files: [".editorconfig", {src: "lint/flake8.cfg", dest: "config/.flake8"}],\n'
        '}\n'
    )
    return temp_dir


class TestRepoFiles:

    def test_copy(self, repo_layout):
        pairs = repo_files.process()
        assert len(pairs) == 2
        assert Path(repo_layout, '.editorconfig').read_text() == 'root = true\n'
        assert Path(repo_layout, 'config', '.flake8').read_text() == '[flake8]\n'

    def test_dry_run_changes_nothing(self, repo_layout, caplog):
        with caplog.at_level(logging.INFO):
            pairs = repo_files.process(dry_run=True)
        assert [os.path.basename(dest) for _, dest in pairs] == ['.editorconfig', '.flake8']
        assert not Path(repo_layout, '.editorconfig').exists()
        assert not Path(repo_layout, 'config').exists()
        assert 'Dry-run mode' in caplog.text
        assert 'Copy repository files copy dry-run completed successfully.' in caplog.text

    def test_clean(self, repo_layout):
        repo_files.process()
        repo_files.process(mode='clean')
        assert not Path(repo_layout, '.editorconfig').exists()
        assert not Path(repo_layout, 'config', '.flake8').exists()
        # Sources are untouched
        assert Path(repo_layout, 'repo', 'shared', '.editorconfig').exists()

    def test_clean_missing_files(self, repo_layout):
        assert len(repo_files.process(mode='clean')) == 2

    def test_missing_config(self, repo_layout):
        with pytest.raises(FileNotFoundError) as exc_info:
            repo_files.process(['nope.json'])
        assert 'cannot read:' in str(exc_info.value)

    def test_invalid_config(self, repo_layout):
        Path(repo_layout, 'bad.json').write_text('{"files": "x"}')
        with pytest.raises(ValueError):
            repo_files.process(['bad.json'])

    def test_invalid_mode(self, repo_layout):
        with pytest.raises(ValueError):
            repo_files.process(mode='move')

    def test_base_dir(self, repo_layout):
        os.rename(os.path.join(repo_layout, 'repo'), os.path.join(repo_layout, 'checkouts'))
        repo_files.process(base_dir='checkouts')
        assert Path(repo_layout, '.editorconfig').exists()


class TestClean:

    def test_removes_files_and_directories(self, temp_dir):
        Path(temp_dir, 'build', 'lib').mkdir(parents=True)
        Path(temp_dir, 'build', 'lib', 'x.py').write_text('')
        Path(temp_dir, 'notes.log').write_text('')
        removed = clean_script.clean(temp_dir, ['build', 'notes.log'])
        assert removed == [os.path.join(temp_dir, 'build'), os.path.join(temp_dir, 'notes.log')]
        assert os.listdir(temp_dir) == []

    def test_missing_paths_are_ignored(self, temp_dir, caplog):
        Path(temp_dir, 'dist').mkdir()
        with caplog.at_level(logging.WARNING):
            removed = clean_script.clean(temp_dir)
        assert removed == [os.path.join(temp_dir, 'dist')]
        assert 'ignoring...' in caplog.text

    def test_default_root_is_cwd(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        Path(temp_dir, 'logs').mkdir()
        assert clean_script.clean(paths=['logs']) == [os.path.join(os.path.realpath(temp_dir), 'logs')]
