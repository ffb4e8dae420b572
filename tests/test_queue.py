"""
Tests for the git-backed Queue.

Tests cover:
- Message loading and state derivation (mocked GitClient)
- Guards and the commit-then-publish sequence (mocked GitClient)
- The queue lifecycle against real repositories, with and without a remote
- Concurrent writers racing on one remote
"""

import json
import logging
import os
import shutil
import subprocess
import tempfile
import pytest
from datetime import datetime
from unittest.mock import MagicMock

from gitqueue.domain.commit_options import CommitOptions, SigningKeyId
from gitqueue.domain.message import MessageKind
from gitqueue.exit_codes import (
    JobAlreadyPendingError,
    LogReadError,
    NoPendingJobError,
    NotARepositoryError,
    PublishRejectedError,
)
from gitqueue.infra.git_client import (
    EmptyRepositoryError,
    GitClient,
    GitCommandError,
    GitCommit,
)
from gitqueue.queue import Queue, QueueState, validate_queue_name

from .conftest import run_git


def commit(subject, body="", hash="0" * 40):
    return GitCommit(
        hash=hash,
        date=datetime(2024, 1, 1),
        author="A committer",
        email="committer@example.com",
        subject=subject,
        body=body,
    )


def no_sign():
    return CommitOptions.from_values(author="A committer <committer@example.com>", no_gpg_sign=True)


# ============================================================================
# Unit tests (mocked GitClient)
# ============================================================================

class TestQueueLoading:
    """Tests for rebuilding queue messages from the log."""

    @pytest.fixture
    def mock_git_client(self):
        client = MagicMock(spec=GitClient)
        client.repo_dir = "/repo"
        client.is_git_repo.return_value = True
        client.current_branch.return_value = "main"
        client.log.return_value = []
        client.has_remote.return_value = False
        return client

    def test_not_a_repository(self, mock_git_client):
        mock_git_client.is_git_repo.return_value = False

        with pytest.raises(NotARepositoryError) as exc_info:
            Queue.create("q", mock_git_client)

        assert "/repo" in str(exc_info.value)

    def test_empty_repository_is_an_empty_queue(self, mock_git_client):
        mock_git_client.log.side_effect = EmptyRepositoryError("main")

        queue = Queue.create("q", mock_git_client)

        assert queue.is_empty()
        assert queue.latest_message() is None
        assert queue.next_job() is None
        assert queue.state() is QueueState.EMPTY

    def test_other_log_errors_propagate(self, mock_git_client):
        mock_git_client.log.side_effect = GitCommandError(['log'], 128, "fatal: bad object HEAD")

        with pytest.raises(LogReadError) as exc_info:
            Queue.create("q", mock_git_client)

        assert "fatal: bad object HEAD" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, GitCommandError)

    def test_filters_commits_of_other_queues(self, mock_git_client):
        mock_git_client.log.return_value = [
            commit("CLAIM LOCK: JOB: other", hash="3" * 40),
            commit("Unrelated change", hash="2" * 40),
            commit("RELEASE LOCK: JOB DONE: q", hash="1" * 40),
            commit("CLAIM LOCK: JOB: q", "job", hash="0" * 40),
        ]

        queue = Queue.create("q", mock_git_client)

        assert [m.commit_hash for m in queue.messages] == ["1" * 40, "0" * 40]
        assert [m.kind for m in queue.messages] == [MessageKind.MARK_JOB_AS_DONE, MessageKind.CREATE_JOB]

    def test_pending_job_is_latest_create_job(self, mock_git_client):
        mock_git_client.log.return_value = [
            commit("CLAIM LOCK: JOB: q", "second job", hash="2" * 40),
            commit("RELEASE LOCK: JOB DONE: q", "first job", hash="1" * 40),
            commit("CLAIM LOCK: JOB: q", "first job", hash="0" * 40),
        ]

        queue = Queue.create("q", mock_git_client)

        assert queue.state() is QueueState.PENDING
        assert queue.next_job().commit_hash == "2" * 40
        assert queue.next_job().payload == "second job"

    def test_done_frees_the_slot(self, mock_git_client):
        mock_git_client.log.return_value = [
            commit("RELEASE LOCK: JOB DONE: q", hash="1" * 40),
            commit("CLAIM LOCK: JOB: q", hash="0" * 40),
        ]

        queue = Queue.create("q", mock_git_client)

        assert queue.state() is QueueState.DONE
        assert queue.latest_message().commit_hash == "1" * 40
        assert queue.next_job() is None


class TestQueueWrites:
    """Tests for guards and the commit/publish/reload sequence."""

    @pytest.fixture
    def mock_git_client(self):
        client = MagicMock(spec=GitClient)
        client.repo_dir = "/repo"
        client.is_git_repo.return_value = True
        client.log.return_value = []
        client.has_remote.return_value = True
        client.commit.return_value = "f" * 40
        return client

    def test_create_job_commits_and_pushes(self, mock_git_client):
        queue = Queue.create("q", mock_git_client)
        options = CommitOptions(no_gpg_sign=True)

        result = queue.create_job("payload", options)

        assert result == "f" * 40
        mock_git_client.commit.assert_called_once_with(
            "CLAIM LOCK: JOB: q", "payload", ['--allow-empty', '--no-gpg-sign']
        )
        mock_git_client.has_remote.assert_called_once_with("origin")
        mock_git_client.push.assert_called_once_with("origin")
        # Loaded on create and reloaded after the write
        assert mock_git_client.log.call_count == 2

    def test_push_happens_after_commit(self, mock_git_client):
        queue = Queue.create("q", mock_git_client)
        queue.create_job("payload")

        calls = [c[0] for c in mock_git_client.method_calls]
        assert calls.index('commit') < calls.index('push')

    def test_no_push_without_remote(self, mock_git_client, caplog):
        mock_git_client.has_remote.return_value = False
        mock_git_client.remotes.return_value = []
        queue = Queue.create("q", mock_git_client)

        with caplog.at_level(logging.WARNING, logger='gitqueue.queue'):
            queue.create_job("payload")

        mock_git_client.push.assert_not_called()
        assert caplog.records == []

    def test_missing_named_remote_is_warned_about(self, mock_git_client, caplog):
        mock_git_client.has_remote.return_value = False
        mock_git_client.remotes.return_value = ['upstream']
        queue = Queue.create("q", mock_git_client)

        with caplog.at_level(logging.WARNING, logger='gitqueue.queue'):
            queue.create_job("payload")

        mock_git_client.push.assert_not_called()
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "'origin' not found" in warnings[0].getMessage()
        assert "upstream" in warnings[0].getMessage()
        assert "f" * 40 in warnings[0].getMessage()

    def test_custom_remote(self, mock_git_client):
        queue = Queue.create("q", mock_git_client, remote="upstream")
        queue.create_job("payload")
        mock_git_client.has_remote.assert_called_once_with("upstream")
        mock_git_client.push.assert_called_once_with("upstream")

    def test_publish_rejection_propagates(self, mock_git_client):
        mock_git_client.push.side_effect = PublishRejectedError("rejected", stderr="! [rejected]")
        queue = Queue.create("q", mock_git_client)

        with pytest.raises(PublishRejectedError):
            queue.create_job("payload")

    def test_create_job_guard(self, mock_git_client):
        mock_git_client.log.return_value = [commit("CLAIM LOCK: JOB: q", hash="9" * 40)]
        queue = Queue.create("q", mock_git_client)

        with pytest.raises(JobAlreadyPendingError) as exc_info:
            queue.create_job("another payload")

        assert exc_info.value.commit_hash == "9" * 40
        assert "9" * 40 in str(exc_info.value)
        mock_git_client.commit.assert_not_called()

    def test_mark_job_as_done_guard(self, mock_git_client):
        queue = Queue.create("q", mock_git_client)

        with pytest.raises(NoPendingJobError):
            queue.mark_job_as_done("payload")

        mock_git_client.commit.assert_not_called()

    def test_mark_job_as_done_uses_release_subject(self, mock_git_client):
        mock_git_client.log.return_value = [commit("CLAIM LOCK: JOB: q", hash="9" * 40)]
        queue = Queue.create("q", mock_git_client)
        options = CommitOptions(signing_key=SigningKeyId("KEY"))

        queue.mark_job_as_done("payload", options)

        mock_git_client.commit.assert_called_once_with(
            "RELEASE LOCK: JOB DONE: q", "payload", ['--allow-empty', '--gpg-sign=KEY']
        )


class TestQueueName:
    """Tests for queue name validation."""

    @pytest.mark.parametrize("name", ["", "   ", "two\nlines", " padded", "padded "])
    def test_invalid_names(self, name):
        with pytest.raises(ValueError):
            validate_queue_name(name)

    @pytest.mark.parametrize("name", ["QUEUE NAME", "deploy/prod", "build: docs"])
    def test_valid_names(self, name):
        assert validate_queue_name(name) == name


# ============================================================================
# Integration tests (real git)
# ============================================================================

class TestQueueLifecycle:
    """Queue behaviour against a real repository without a remote."""

    def test_empty_repo_has_no_job(self, empty_repo):
        queue = Queue.create("Q", GitClient(str(empty_repo)))
        assert queue.next_job() is None
        assert queue.state() is QueueState.EMPTY

    def test_not_a_repository(self, tmp_path):
        plain = tmp_path / 'plain'
        plain.mkdir()
        with pytest.raises(NotARepositoryError):
            Queue.create("Q", GitClient(str(plain)))

    def test_create_job(self, empty_repo):
        queue = Queue.create("Q", GitClient(str(empty_repo)))

        commit_hash = queue.create_job("payload-1", no_sign())

        next_job = queue.next_job()
        assert next_job is not None
        assert next_job.commit_hash == commit_hash
        assert next_job.payload == "payload-1"
        assert queue.state() is QueueState.PENDING

    def test_full_cycle(self, empty_repo):
        queue = Queue.create("Q", GitClient(str(empty_repo)))

        queue.create_job("payload-1", no_sign())
        queue.mark_job_as_done("payload-1", no_sign())

        assert queue.next_job() is None
        assert queue.state() is QueueState.DONE

        # The slot is free again
        second = queue.create_job("payload-2", no_sign())
        assert queue.next_job().commit_hash == second
        assert len(queue.messages) == 3

    def test_second_create_job_fails(self, empty_repo):
        queue = Queue.create("Q", GitClient(str(empty_repo)))
        first = queue.create_job("payload-1", no_sign())

        with pytest.raises(JobAlreadyPendingError) as exc_info:
            queue.create_job("payload-2", no_sign())

        assert exc_info.value.commit_hash == first

    def test_mark_job_as_done_without_job_fails(self, empty_repo):
        queue = Queue.create("Q", GitClient(str(empty_repo)))
        with pytest.raises(NoPendingJobError):
            queue.mark_job_as_done("payload", no_sign())

    def test_state_survives_a_new_instance(self, empty_repo):
        """Nothing is cached: a fresh Queue sees what the previous one wrote."""
        first = Queue.create("Q", GitClient(str(empty_repo)))
        commit_hash = first.create_job("payload", no_sign())

        second = Queue.create("Q", GitClient(str(empty_repo)))

        assert second.next_job().commit_hash == commit_hash

    def test_queues_are_isolated(self, empty_repo):
        client = GitClient(str(empty_repo))
        queue_a = Queue.create("A", client)
        queue_a.create_job("for A", no_sign())

        queue_b = Queue.create("B", client)
        assert queue_b.next_job() is None

        # B can hold its own job at the same time
        queue_b.create_job("for B", no_sign())
        queue_a.load_messages()
        assert queue_a.next_job().payload == "for A"
        assert queue_b.next_job().payload == "for B"

    def test_queue_name_prefix_is_not_shared(self, empty_repo):
        client = GitClient(str(empty_repo))
        Queue.create("build", client).create_job("x", no_sign())
        assert Queue.create("build-docs", client).next_job() is None
        assert Queue.create("buil", client).next_job() is None

    def test_unrelated_commits_are_ignored(self, empty_repo):
        run_git(empty_repo, 'commit', '--allow-empty', '-m', 'Initial commit')
        queue = Queue.create("Q", GitClient(str(empty_repo)))
        assert queue.is_empty()

        queue.create_job("payload", no_sign())
        run_git(empty_repo, 'commit', '--allow-empty', '-m', 'Unrelated work')
        queue.load_messages()

        assert queue.next_job().payload == "payload"

    def test_json_payload_round_trip(self, empty_repo):
        payload = json.dumps({"ref": "v1.2.0", "env": {"NAME": "prod"}, "notes": "a\n\nb"}, indent=2)
        queue = Queue.create("Q", GitClient(str(empty_repo)))

        queue.create_job("\n" + payload + "\n\n", no_sign())

        assert queue.next_job().payload == payload
        assert json.loads(queue.next_job().payload)["notes"] == "a\n\nb"

    def test_empty_payload(self, empty_repo):
        queue = Queue.create("Q", GitClient(str(empty_repo)))
        queue.create_job("", no_sign())
        assert queue.next_job().payload == ""

    def test_commit_author(self, empty_repo):
        queue = Queue.create("Q", GitClient(str(empty_repo)))
        queue.create_job("payload", no_sign())

        output = run_git(empty_repo, 'log', '-1')

        assert 'Author: A committer <committer@example.com>' in output
        assert queue.next_job().author_name == "A committer"

    def test_no_gpg_sign_produces_unsigned_commit(self, empty_repo):
        # Signing configured in the repo must be overridden by --no-gpg-sign
        run_git(empty_repo, 'config', 'commit.gpgsign', 'true')
        queue = Queue.create("Q", GitClient(str(empty_repo)))

        queue.create_job("payload", no_sign())

        signature_status = run_git(empty_repo, 'log', '-1', '--format=%G?').strip()
        assert signature_status == 'N'


@pytest.fixture
def signing_key(monkeypatch):
    """A passphrase-less key in a throwaway GnuPG home; yields its fingerprint."""
    # gpg-agent socket paths must stay short, so avoid the deep tmp_path
    home = tempfile.mkdtemp(prefix='gq-gpg-')
    os.chmod(home, 0o700)
    monkeypatch.setenv('GNUPGHOME', home)

    subprocess.run(
        ['gpg', '--batch', '--passphrase', '', '--quick-gen-key',
         'Queue Signer <signer@example.com>', 'default', 'default', 'never'],
        check=True, capture_output=True,
    )
    listing = subprocess.run(
        ['gpg', '--batch', '--with-colons', '--list-secret-keys'],
        check=True, capture_output=True, text=True,
    ).stdout
    fingerprint = next(line.split(':')[9] for line in listing.splitlines() if line.startswith('fpr'))

    yield home, fingerprint

    subprocess.run(['gpgconf', '--kill', 'gpg-agent'], capture_output=True)
    shutil.rmtree(home, ignore_errors=True)


@pytest.mark.skipif(shutil.which('gpg') is None, reason="gpg is not installed")
class TestSignedCommits:
    """Queue commits signed with a real key."""

    def test_signing_key_produces_verified_commit(self, empty_repo, signing_key):
        home, fingerprint = signing_key
        client = GitClient(str(empty_repo), env={'GNUPGHOME': home, 'LC_ALL': 'C'})
        queue = Queue.create("Q", client)

        commit_hash = queue.create_job("payload", CommitOptions.from_values(signing_key=fingerprint))

        status = run_git(empty_repo, 'log', '-1', '--format=%G? %GF').strip()
        assert status == f"G {fingerprint}"
        assert "Good signature" in client.show_signature(commit_hash)
        assert queue.next_job().commit_hash == commit_hash

    def test_no_gpg_sign_leaves_commit_unsigned(self, empty_repo, signing_key):
        home, fingerprint = signing_key
        run_git(empty_repo, 'config', 'user.signingkey', fingerprint)
        run_git(empty_repo, 'config', 'commit.gpgsign', 'true')
        queue = Queue.create("Q", GitClient(str(empty_repo), env={'GNUPGHOME': home}))

        queue.create_job("payload", CommitOptions.from_values(no_gpg_sign=True))

        assert run_git(empty_repo, 'log', '-1', '--format=%G?').strip() == 'N'


class TestQueueWithRemote:
    """Queue behaviour when commits are published to a shared remote."""

    def test_create_job_is_published(self, clone_remote, remote_repo):
        producer = Queue.create("Q", GitClient(str(clone_remote('producer'))))

        commit_hash = producer.create_job("payload-1", no_sign())

        assert run_git(remote_repo, 'rev-parse', 'main').strip() == commit_hash

    def test_consumer_sees_producer_job(self, clone_remote):
        producer = Queue.create("Q", GitClient(str(clone_remote('producer'))))
        commit_hash = producer.create_job("payload-1", no_sign())

        consumer = Queue.create("Q", GitClient(str(clone_remote('consumer'))))
        assert consumer.next_job().commit_hash == commit_hash
        assert consumer.next_job().payload == "payload-1"

        consumer.mark_job_as_done("payload-1", no_sign())

        fresh = Queue.create("Q", GitClient(str(clone_remote('fresh'))))
        assert fresh.next_job() is None
        assert fresh.state() is QueueState.DONE

    def test_concurrent_create_job_has_one_winner(self, clone_remote, remote_repo):
        """Both writers pass the local guard; only one push is accepted."""
        first = Queue.create("Q", GitClient(str(clone_remote('first'))))
        second = Queue.create("Q", GitClient(str(clone_remote('second'))))

        winner = first.create_job("from first", no_sign())

        with pytest.raises(PublishRejectedError):
            second.create_job("from second", no_sign())

        remote_subjects = run_git(remote_repo, 'log', '--format=%s', 'main').splitlines()
        assert remote_subjects == ["CLAIM LOCK: JOB: Q"]
        assert run_git(remote_repo, 'rev-parse', 'main').strip() == winner

        observer = Queue.create("Q", GitClient(str(clone_remote('observer'))))
        assert observer.next_job().payload == "from first"
