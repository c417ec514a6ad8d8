import subprocess
from pathlib import Path

import pytest

from calmorph_conv.core.contrast import resolve_contrast
from calmorph_conv.core.errors import ConversionEngineFailure
from calmorph_conv.core.profiles import get_profile
from calmorph_conv.modules.conversion import FrameTask, ImageMagickEngine, remove_stale_staging
from calmorph_conv.modules.conversion import engine as engine_module


@pytest.fixture
def task(tmp_path):
    out = tmp_path / '1_wtproc'
    out.mkdir()
    frame = tmp_path / 'xy0001c1.tif'
    frame.write_bytes(b'II*\x00')
    return FrameTask(
        row=0, col=0, label='wt', scan_ordinal=0, field=1, channel=1,
        input_path=frame,
        output_dir=out,
        output_template='1_wtproc-C%d.jpg',
        sequence_start=5,
        tile_count=4,
        contrast=resolve_contrast('none', 12, 16),
        transform_ops=get_profile('joe').transform_ops,
    )


def fake_convert(tiles=None, returncode=0):
    """subprocess.run stand-in that writes tiles like convert would"""
    def run(cmd, **kwargs):
        template = Path(cmd[-1])
        start = int(cmd[cmd.index('-scene') + 1])
        count = tiles if tiles is not None else 4
        for seq in range(start, start + count):
            (template.parent / template.name.replace('%d', str(seq))).write_bytes(b'jpeg')
        if returncode:
            raise subprocess.CalledProcessError(returncode, cmd, stderr='convert: no decode delegate')
        return subprocess.CompletedProcess(cmd, 0, '', '')
    return run


def test_build_command(task):
    cmd = ImageMagickEngine('convert', out_depth=8).build_command(task, task.output_dir)
    assert cmd == [
        'convert', str(task.input_path), '-quiet',
        '-evaluate', 'Multiply', '16',
        '-depth', '8',
        '-crop', '2x2@', '+repage', '+adjoin',
        '-scene', '5',
        str(task.output_dir / '1_wtproc-C%d.jpg'),
    ]


def test_run_moves_tiles_into_place(task, monkeypatch):
    monkeypatch.setattr(engine_module.subprocess, 'run', fake_convert())
    ImageMagickEngine().run(task)

    assert sorted(p.name for p in task.output_dir.iterdir()) == [
        f'1_wtproc-C{n}.jpg' for n in (5, 6, 7, 8)
    ]


def test_wrong_tile_count_leaves_nothing(task, monkeypatch):
    monkeypatch.setattr(engine_module.subprocess, 'run', fake_convert(tiles=3))
    with pytest.raises(ConversionEngineFailure, match="expected 4 tiles"):
        ImageMagickEngine().run(task)
    assert list(task.output_dir.iterdir()) == []


def test_convert_error_leaves_nothing(task, monkeypatch):
    monkeypatch.setattr(engine_module.subprocess, 'run', fake_convert(returncode=1))
    with pytest.raises(ConversionEngineFailure, match="no decode delegate"):
        ImageMagickEngine().run(task)
    assert list(task.output_dir.iterdir()) == []


def test_missing_executable(task):
    engine = ImageMagickEngine('definitely-not-imagemagick')
    assert not engine.check_available()
    with pytest.raises(ConversionEngineFailure, match="not found"):
        engine.run(task)


def test_remove_stale_staging(tmp_path):
    assert remove_stale_staging(tmp_path / 'nothing') == 0
    (tmp_path / 'g1' / '.staging-x').mkdir(parents=True)
    (tmp_path / 'g2' / '.staging-y').mkdir(parents=True)
    (tmp_path / 'g2' / 'keep.jpg').write_bytes(b'')
    assert remove_stale_staging(tmp_path) == 2
    assert (tmp_path / 'g2' / 'keep.jpg').exists()


def test_convert_runs_in_its_own_session(task, monkeypatch):
    seen = {}
    convert = fake_convert()

    def run(cmd, **kwargs):
        seen.update(kwargs)
        return convert(cmd, **kwargs)

    monkeypatch.setattr(engine_module.subprocess, 'run', run)
    ImageMagickEngine().run(task)
    assert seen['start_new_session'] is True
