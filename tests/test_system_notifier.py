import subprocess

import pytest

from slouchguard.utils.system_notifier import SystemNotifier


class FakePlayer:
    def __init__(self, cmd):
        self.cmd = cmd
        self.returncode = 0  # finished unless a test says otherwise

    def poll(self):
        return self.returncode


@pytest.fixture
def players(monkeypatch):
    started = []

    def fake_popen(cmd, **kwargs):
        started.append(FakePlayer(cmd))
        return started[-1]

    monkeypatch.setattr(subprocess, "Popen", fake_popen)
    return started


@pytest.fixture
def notifier():
    n = SystemNotifier(min_sound_interval_sec=3.0)
    n.system = "Linux"
    n.linux_player = "aplay"
    return n


@pytest.fixture
def sound(tmp_path):
    path = tmp_path / "alert.wav"
    path.write_bytes(b"RIFF")
    return str(path)


def test_plays_then_respects_interval(notifier, sound, players):
    assert notifier.play_sound(sound, now=10.0)
    assert not notifier.play_sound(sound, now=11.0)
    assert notifier.play_sound(sound, now=13.0)
    assert [p.cmd for p in players] == [["aplay", sound], ["aplay", sound]]


def test_finished_player_is_reaped(notifier, sound, players):
    notifier.play_sound(sound, now=0.0)
    players[0].returncode = None
    assert not notifier.play_sound(sound, now=5.0)
    assert len(players) == 1

    players[0].returncode = 0
    assert notifier.play_sound(sound, now=6.0)
    assert len(players) == 2
    assert notifier._player is players[1]


def test_ffplay_runs_headless(notifier, sound, players):
    notifier.linux_player = "ffplay"
    notifier.play_sound(sound, now=0.0)
    assert players[0].cmd[:3] == ["ffplay", "-nodisp", "-autoexit"]


def test_missing_file_or_player(notifier, tmp_path, sound, players):
    assert not notifier.play_sound(None)
    assert not notifier.play_sound(str(tmp_path / "nope.wav"), now=0.0)
    notifier.linux_player = None
    assert not notifier.play_sound(sound, now=0.0)
    assert players == []


def test_notify_unsupported_platform():
    n = SystemNotifier()
    n.system = "Plan9"
    assert not n.notify("SlouchGuard", "Sit straight")


def test_macos_notification_escapes_quotes(monkeypatch):
    scripts = []
    monkeypatch.setattr(subprocess, "run", lambda cmd, check: scripts.append(cmd[2]))
    n = SystemNotifier()
    n.system = "Darwin"
    n.has_osascript = True
    assert n.notify('Slouch"Guard', 'Sit "straight" \\ now')
    assert scripts == [
        'display notification "Sit \\"straight\\" \\\\ now" with title "Slouch\\"Guard"'
    ]
