from dawndream.brightness import NullBrightness, SysfsBrightness, find_backlight


def _fake_backlight(tmp_path, current=120, maximum=240):
    device = tmp_path / "intel_backlight"
    device.mkdir()
    (device / "max_brightness").write_text(f"{maximum}\n", encoding="utf-8")
    (device / "brightness").write_text(f"{current}\n", encoding="utf-8")
    return device


def test_sysfs_brightness_reads_and_writes_fraction(tmp_path):
    device = _fake_backlight(tmp_path)
    brightness = SysfsBrightness(str(device))
    assert brightness.get() == 0.5
    brightness.set(0.25)
    assert (device / "brightness").read_text(encoding="utf-8") == "60"


def test_sysfs_brightness_ignores_missing_device(tmp_path):
    brightness = SysfsBrightness(str(tmp_path / "gone"))
    brightness.set(0.5)
    assert brightness.get() == 1.0


def test_find_backlight_by_name(tmp_path):
    _fake_backlight(tmp_path)
    assert find_backlight("intel_backlight", root=str(tmp_path)).endswith("intel_backlight")
    assert find_backlight("acpi_video0", root=str(tmp_path)) is None


def test_null_brightness_clamps():
    brightness = NullBrightness()
    brightness.set(3)
    assert brightness.get() == 1.0
