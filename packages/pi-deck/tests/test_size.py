"""Tests for pi.deck.size."""

from __future__ import annotations

from pi.deck.size import DEFAULT_SIZE, Size, SizeProbe


class FakeRunner:
    """Answers commands from a table and records what was asked."""

    def __init__(self, answers: dict[str, str] | None = None) -> None:
        self.answers = answers or {}
        self.calls: list[str] = []

    def __call__(self, argv: list[str]) -> str | None:
        cmd = " ".join(argv)
        self.calls.append(cmd)
        return self.answers.get(cmd)


def no_direct() -> Size | None:
    return None


class TestSize:
    def test_narrow(self) -> None:
        assert Size(24, 79).is_narrow
        assert not Size(24, 80).is_narrow


class TestSizeProbe:
    def test_direct_query_wins(self) -> None:
        runner = FakeRunner()
        probe = SizeProbe(direct=lambda: Size(40, 120), runner=runner, env={})
        assert probe.probe() == Size(40, 120)
        assert probe.source == "direct"
        assert runner.calls == []

    def test_env_override(self) -> None:
        probe = SizeProbe(
            direct=no_direct, runner=FakeRunner(), env={"PI_DECK_ROWS": "30", "PI_DECK_COLS": "90"}
        )
        assert probe.probe() == Size(30, 90)
        assert probe.source == "override"

    def test_forced_size(self) -> None:
        probe = SizeProbe(direct=no_direct, runner=FakeRunner(), env={}, forced=Size(12, 50))
        assert probe.probe() == Size(12, 50)

    def test_stty_stdout_then_tty(self) -> None:
        runner = FakeRunner({"stty size -F /dev/tty": "33 101\n"})
        probe = SizeProbe(direct=no_direct, runner=runner, env={})
        assert probe.probe() == Size(33, 101)
        assert probe.source == "stty-tty"
        assert runner.calls == ["stty size -F /proc/self/fd/1", "stty size -F /dev/tty"]

    def test_tput(self) -> None:
        runner = FakeRunner({"tput lines": "20\n", "tput cols": "70\n"})
        probe = SizeProbe(direct=no_direct, runner=runner, env={})
        assert probe.probe() == Size(20, 70)
        assert probe.source == "tput"

    def test_stty_all_linux(self) -> None:
        output = "speed 38400 baud; rows 50; columns 160; line = 0;\n"
        probe = SizeProbe(direct=no_direct, runner=FakeRunner({"stty -a": output}), env={})
        assert probe.probe() == Size(50, 160)

    def test_stty_all_bsd(self) -> None:
        output = "speed 9600 baud; 45 rows; 132 columns;\n"
        probe = SizeProbe(direct=no_direct, runner=FakeRunner({"stty -a": output}), env={})
        assert probe.probe() == Size(45, 132)

    def test_lines_columns_env(self) -> None:
        probe = SizeProbe(direct=no_direct, runner=FakeRunner(), env={"LINES": "25", "COLUMNS": "85"})
        assert probe.probe() == Size(25, 85)
        assert probe.source == "env"

    def test_invalid_answers_are_skipped(self) -> None:
        runner = FakeRunner({"stty size -F /proc/self/fd/1": "0 0", "stty size": "garbage"})
        probe = SizeProbe(direct=no_direct, runner=runner, env={"LINES": "x", "COLUMNS": "80"})
        assert probe.probe() == DEFAULT_SIZE
        assert probe.source == "last-known"

    def test_last_known_survives_failures(self) -> None:
        sizes = [Size(30, 100), None]
        probe = SizeProbe(direct=lambda: sizes.pop(0), runner=FakeRunner(), env={})
        assert probe.probe() == Size(30, 100)
        assert probe.probe() == Size(30, 100)
        assert probe.source == "last-known"

    def test_raising_probe_is_skipped(self) -> None:
        def boom() -> Size | None:
            raise OSError("no tty")

        probe = SizeProbe(direct=boom, runner=FakeRunner(), env={"LINES": "10", "COLUMNS": "20"})
        assert probe.probe() == Size(10, 20)
