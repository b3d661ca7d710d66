from app_settings import (
    AppPaths,
    AppSettings,
    get_game_directory,
    load_settings,
    save_settings,
    set_game_directory,
)


def test_ensure_layout_creates_working_dirs(tmp_path):
    paths = AppPaths(tmp_path / "base")
    paths.ensure_layout()

    for name in ("mods", "configs", "profiles", "configsP", "tmp"):
        assert (tmp_path / "base" / name).is_dir()


def test_defaults_when_no_files(paths):
    assert load_settings(paths) == AppSettings()


def test_save_then_load(paths, game_dir):
    set_game_directory(paths, game_dir)
    settings = AppSettings(
        warnings_enabled=True,
        logging_enabled=True,
        reinstall_after_dir_change=True,
        active_profile="Hard Mode",
    )

    save_settings(paths, settings)
    loaded = load_settings(paths)

    assert loaded.warnings_enabled
    assert loaded.logging_enabled
    assert not loaded.close_on_launch
    assert loaded.reinstall_after_dir_change
    assert loaded.active_profile == "Hard Mode"
    assert loaded.game_directory == str(game_dir)


def test_settings_file_layout(paths):
    save_settings(paths, AppSettings(close_on_launch=True, active_profile="P"))
    assert paths.settings_file.read_text(encoding="utf-8").splitlines() == [
        "Warnings=0",
        "Logging=0",
        "CloseOnLaunch=1",
        "ReinstallAfterDirChange=0",
        "KeepModengineSettings=0",
        "ActiveProfile=P",
    ]


def test_unknown_and_malformed_lines_ignored(paths):
    paths.settings_file.write_text(
        "Logging = 1\nColour=blue\nnot a setting\nWarnings=1=2\n", encoding="utf-8"
    )
    settings = load_settings(paths)
    assert settings.logging_enabled
    assert not settings.warnings_enabled


def test_game_directory_must_exist(paths, tmp_path):
    set_game_directory(paths, tmp_path / "uninstalled")
    assert get_game_directory(paths) == ""
