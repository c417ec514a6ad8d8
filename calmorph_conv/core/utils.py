"""
Input directory inspection helpers
"""
import os
from pathlib import Path
from typing import List

import tifffile

from .errors import FieldCountAmbiguous, FilenamePatternMismatch
from .naming import FrameFilenameCodec, infer_digit_width


def list_input_frames(input_dir: Path, prefix: str, ext: str) -> List[Path]:
    """Input frames matching {prefix}*.{ext}, sorted by name"""
    return sorted(
        p for p in Path(input_dir).glob(f'{prefix}*.{ext}')
        if p.is_file() and not p.name.startswith('._')
    )


def detect_digit_width(frames: List[Path], codec: FrameFilenameCodec) -> int:
    """Digit width of the first input frame"""
    if not frames:
        raise FilenamePatternMismatch(
            f"No input files matching {codec.prefix}*.{codec.ext} to infer digit width from"
        )
    return infer_digit_width(frames[0].name, codec.prefix, codec.channel_sep, codec.ext)


def infer_fields_per_well(frames: List[Path], codec: FrameFilenameCodec,
                          well_count: int, channel_count: int) -> int:
    """
    Infer the number of fields per well from the input frames.

    The file count alone is ambiguous for a partial scan, so it must agree
    with the highest frame number on disk before it is trusted.

    Raises:
        FieldCountAmbiguous: When the count cannot be determined reliably
    """
    per_field = well_count * channel_count
    if not frames or len(frames) % per_field:
        raise FieldCountAmbiguous(
            f"Cannot infer fields per well from {len(frames)} input files "
            f"({well_count} wells x {channel_count} channels); set the number of fields explicitly"
        )
    fields = len(frames) // per_field

    pattern = codec.input_pattern()
    frame_numbers = [int(m.group(1)) for m in map(pattern.match, (p.name for p in frames))
                     if m and m.group(1)]
    if not frame_numbers or max(frame_numbers) != well_count * fields:
        raise FieldCountAmbiguous(
            f"{len(frames)} input files suggest {fields} fields per well, but the "
            f"highest frame number is {max(frame_numbers, default=0)}; "
            f"set the number of fields explicitly"
        )
    return fields


def read_file_bit_depth(frame: Path) -> int:
    """Bits per sample stored in a TIFF file"""
    with tifffile.TiffFile(frame) as tif:
        return int(tif.pages[0].bitspersample)


def resolve_jobs(jobs=None) -> int:
    """
    Worker count from a jobs setting.

    None means one worker per CPU. A string starting with '+' or '-' is
    relative to the CPU count ('+0' == CPU count, '-1' == one fewer).
    0 also means one worker per CPU. Negative integers are relative too.
    """
    cpus = os.cpu_count() or 1
    if jobs is None:
        return cpus
    if isinstance(jobs, str) and jobs[:1] in ('+', '-'):
        return max(1, cpus + int(jobs))
    jobs = int(jobs)
    if jobs == 0:
        return cpus
    if jobs < 0:
        return max(1, cpus + jobs)
    return jobs
