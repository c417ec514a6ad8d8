"""
Input/output filename construction and output tile sequencing
"""
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict

from .errors import FilenamePatternMismatch, UnrecognizedChannel


# CalMorph symbol per channel (1-based): cell wall, nucleus, actin
DEFAULT_CHANNEL_SYMBOLS = {1: 'C', 2: 'D', 3: 'A'}

# ImageMagick fills this in with the scene number of each output tile
SCENE_PLACEHOLDER = '%d'


@dataclass(frozen=True)
class FrameFilenameCodec:
    """
    Builds input frame names and output tile names.

    Input:  {prefix}{frame:0{width}d}{channel_sep}{channel}.{ext}
    Output: {group_prefix}{label}{group_suffix}-{symbol}{seq}.{out_ext}
    """
    prefix: str = 'xy'
    digit_width: int = 4
    channel_sep: str = 'c'
    ext: str = 'tif'
    group_prefix: str = '1_'
    group_suffix: str = 'proc'
    out_ext: str = 'jpg'
    channel_symbols: Dict[int, str] = field(default_factory=lambda: dict(DEFAULT_CHANNEL_SYMBOLS))

    def frame_number(self, scan_ordinal: int, field_index: int, fields_per_well: int) -> int:
        """1-based frame number of a field; frames of one well are consecutive"""
        return scan_ordinal * fields_per_well + field_index

    def input_filename(self, scan_ordinal: int, field_index: int,
                       channel: int, fields_per_well: int) -> str:
        frame = self.frame_number(scan_ordinal, field_index, fields_per_well)
        return f"{self.prefix}{frame:0{self.digit_width}d}{self.channel_sep}{channel}.{self.ext}"

    def group_dirname(self, label: str) -> str:
        return f"{self.group_prefix}{label}{self.group_suffix}"

    def symbol(self, channel: int) -> str:
        try:
            return self.channel_symbols[channel]
        except KeyError:
            raise UnrecognizedChannel(
                f"No output symbol registered for channel {channel} "
                f"(known: {sorted(self.channel_symbols)})"
            ) from None

    def output_template(self, label: str, channel: int) -> str:
        """Output filename with the scene placeholder left for ImageMagick"""
        return f"{self.group_dirname(label)}-{self.symbol(channel)}{SCENE_PLACEHOLDER}.{self.out_ext}"

    def output_filename(self, label: str, channel: int, seq: int) -> str:
        return f"{self.group_dirname(label)}-{self.symbol(channel)}{seq}.{self.out_ext}"

    def input_pattern(self) -> re.Pattern:
        """Regex matching input frames, capturing frame digits and channel"""
        return re.compile(
            rf'^{re.escape(self.prefix)}(\d*){re.escape(self.channel_sep)}(\d*)\.{re.escape(self.ext)}$'
        )

    def output_pattern(self, label: str, symbol: str) -> re.Pattern:
        """Regex matching output tiles of one group/channel, capturing seq"""
        stem = re.escape(f"{self.group_dirname(label)}-{symbol}")
        return re.compile(rf'^{stem}(\d+)\.{re.escape(self.out_ext)}$')


def infer_digit_width(sample_name: str, prefix: str, channel_sep: str, ext: str) -> int:
    """
    Count the zero-padded digits in a sample input filename.

    Raises:
        FilenamePatternMismatch: If the name does not follow the input pattern
    """
    pattern = FrameFilenameCodec(prefix=prefix, channel_sep=channel_sep, ext=ext).input_pattern()
    match = pattern.match(Path(sample_name).name)
    if not match or not match.group(1):
        raise FilenamePatternMismatch(
            f"Unexpected input filename format {sample_name!r}. Expecting "
            f"{prefix}[zero-padded digits]{channel_sep}[digit for channel].{ext}"
        )
    return len(match.group(1))


def first_sequence_number(occurrence_rank: int, field_index: int,
                          tiles_per_frame: int, fields_per_well: int) -> int:
    """
    First output tile number of a (well, field) within its genotype group.

    CalMorph expects every group numbered 1..N without gaps, even though
    the tiles come from several wells. Each earlier well of the same group
    owns fields_per_well * tiles_per_frame numbers, each earlier field of
    this well owns tiles_per_frame.
    """
    return (occurrence_rank * fields_per_well * tiles_per_frame
            + (field_index - 1) * tiles_per_frame + 1)


def sequence_range(occurrence_rank: int, field_index: int,
                   tiles_per_frame: int, fields_per_well: int) -> range:
    """All tile numbers produced by one (well, field)"""
    start = first_sequence_number(occurrence_rank, field_index, tiles_per_frame, fields_per_well)
    return range(start, start + tiles_per_frame)
