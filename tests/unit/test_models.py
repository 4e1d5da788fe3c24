"""Tests for the data models: watch configuration, events, loop states."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from buildnrun.models.config import ColorMode, WatchConfig
from buildnrun.models.events import EventKind, FsEvent
from buildnrun.models.states import VALID_TRANSITIONS, LoopState


class TestWatchConfigDefaults:
    def test_empty_watch_roots_default_to_cwd(self):
        config = WatchConfig(binary_name="app")
        assert config.effective_watch_roots() == [Path(".")]

    def test_watch_roots_preserve_order(self):
        config = WatchConfig(binary_name="app", watch_roots=[Path("b"), Path("a")])
        assert config.effective_watch_roots() == [Path("b"), Path("a")]

    def test_executable_defaults_to_target_debug(self):
        config = WatchConfig(binary_name="app")
        assert config.executable_path() == Path("target/debug/app")
        assert config.executable_path().parts[0] == "target"

    def test_release_mode_selects_release_dir(self):
        config = WatchConfig(binary_name="app", release_mode=True)
        assert config.executable_path() == Path("target/release/app")

    def test_custom_target_dir(self):
        config = WatchConfig(binary_name="app", target_dir=Path("/tmp/out"))
        assert config.executable_path() == Path("/tmp/out/debug/app")

    def test_target_triple_adds_directory(self):
        config = WatchConfig(binary_name="app", target_triple="x86_64-unknown-linux-musl")
        assert config.executable_path() == Path("target/x86_64-unknown-linux-musl/debug/app")

    @pytest.mark.parametrize(
        "profile,expected",
        [("dev", "debug"), ("test", "debug"), ("release", "release"), ("bench", "release"), ("fast", "fast")],
    )
    def test_profile_directory(self, profile: str, expected: str):
        config = WatchConfig(binary_name="app", profile=profile)
        assert config.profile_dir() == expected

    def test_config_is_frozen(self):
        config = WatchConfig(binary_name="app")
        with pytest.raises(ValidationError):
            config.release_mode = True  # type: ignore[misc]

    def test_binary_name_required(self):
        with pytest.raises(ValidationError):
            WatchConfig()  # type: ignore[call-arg]

    def test_jobs_must_be_positive(self):
        with pytest.raises(ValidationError):
            WatchConfig(binary_name="app", jobs=0)


class TestBuildArgs:
    def test_minimal_args_select_binary(self):
        assert WatchConfig(binary_name="backend").build_args() == ["--bin", "backend"]

    def test_release_flag(self):
        args = WatchConfig(binary_name="backend", release_mode=True).build_args()
        assert args == ["--bin", "backend", "--release"]

    def test_full_args_follow_declaration_order(self):
        config = WatchConfig(
            quiet=True,
            binary_name="app",
            package="core",
            jobs=4,
            release_mode=True,
            profile="fast",
            features=["tls", "metrics"],
            all_features=True,
            no_default_features=True,
            target_triple="aarch64-apple-darwin",
            target_dir=Path("out"),
            manifest_path=Path("crates/app/Cargo.toml"),
            message_format="short",
            verbose=2,
            color=ColorMode.NEVER,
            frozen=True,
            locked=True,
            offline=True,
        )
        assert config.build_args() == [
            "--quiet",
            "--bin", "app",
            "--package", "core",
            "--jobs", "4",
            "--release",
            "--profile", "fast",
            "--features", "tls",
            "--features", "metrics",
            "--all-features",
            "--no-default-features",
            "--target", "aarch64-apple-darwin",
            "--target-dir", "out",
            "--manifest-path", str(Path("crates/app/Cargo.toml")),
            "--message-format", "short",
            "-v", "-v",
            "--color", "never",
            "--frozen",
            "--locked",
            "--offline",
        ]

    def test_run_args_not_passed_to_build(self):
        config = WatchConfig(binary_name="app", run_args=["--port", "8080"])
        assert "--port" not in config.build_args()


class TestFsEvent:
    def test_rename_subject_is_new_path(self):
        event = FsEvent.rename("src/a.rs", "target/a.rs")
        assert event.kind == EventKind.RENAME
        assert event.subject_path == Path("target/a.rs")

    def test_write_subject_is_path(self):
        assert FsEvent.write("src/main.rs").subject_path == Path("src/main.rs")

    def test_rescan_has_no_path(self):
        event = FsEvent.rescan()
        assert event.path is None
        assert event.subject_path is None

    def test_write_requires_path(self):
        with pytest.raises(ValidationError):
            FsEvent(kind=EventKind.WRITE)

    def test_rename_requires_both_paths(self):
        with pytest.raises(ValidationError):
            FsEvent(kind=EventKind.RENAME, path=Path("a"))

    def test_rescan_rejects_path(self):
        with pytest.raises(ValidationError):
            FsEvent(kind=EventKind.RESCAN, path=Path("a"))

    def test_other_path_optional(self):
        assert FsEvent.other().path is None
        assert FsEvent.other("src").path == Path("src")


class TestLoopStates:
    def test_no_terminal_state(self):
        for state in LoopState:
            assert VALID_TRANSITIONS[state], f"{state} has no outgoing transition"

    def test_building_branches(self):
        assert VALID_TRANSITIONS[LoopState.BUILDING] == {LoopState.SPAWNING, LoopState.WAITING}
