"""
Contrast handling per channel.

Modes:
- none: no enhancement; sensors that fill fewer bits than the file holds
        are rescaled with a fixed multiply so the data spans the full range
- auto: linear stretch from min/max to full range (ImageMagick -auto-level)
- norm: expand to full range clipping 2% black and 1% white (-normalize)
"""
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from .errors import ChannelContrastCountMismatch, InvalidContrastMode


CONTRAST_MODES = ('none', 'auto', 'norm')


@dataclass(frozen=True)
class ContrastParams:
    mode: str
    multiply: Optional[int] = None
    operation: Optional[str] = None

    def to_args(self) -> Tuple[str, ...]:
        """ImageMagick arguments for this contrast setting"""
        if self.multiply is not None:
            return ('-evaluate', 'Multiply', str(self.multiply))
        if self.operation:
            return (self.operation,)
        return ()

    @property
    def is_noop(self) -> bool:
        return self.multiply is None and self.operation is None


def resolve_contrast(mode: str, sensor_bit_depth: int, file_bit_depth: int) -> ContrastParams:
    """
    Translate a contrast mode into transform parameters.

    Args:
        mode: 'none', 'auto' or 'norm'
        sensor_bit_depth: Bits actually used by the camera (e.g. 11)
        file_bit_depth: Bits allocated per sample in the file (e.g. 16)

    Returns:
        ContrastParams
    """
    if mode == 'none':
        if file_bit_depth > sensor_bit_depth:
            # 2^file / 2^sensor
            return ContrastParams(mode, multiply=1 << (file_bit_depth - sensor_bit_depth))
        return ContrastParams(mode)
    if mode == 'auto':
        return ContrastParams(mode, operation='-auto-level')
    if mode == 'norm':
        return ContrastParams(mode, operation='-normalize')
    raise InvalidContrastMode(
        f"Invalid contrast option {mode!r}. Expecting one of {', '.join(CONTRAST_MODES)}."
    )


def resolve_channel_contrasts(modes: Sequence[str], channel_count: int,
                              sensor_bit_depth: int, file_bit_depth: int,
                              defaults: Optional[Dict[int, str]] = None) -> Dict[int, ContrastParams]:
    """
    Resolve a contrast setting for every channel (1-based).

    A single mode applies to all channels, otherwise exactly one mode per
    channel is required. With no modes the per-channel defaults are used.
    """
    modes = list(modes or [])
    if modes and len(modes) not in (1, channel_count):
        raise ChannelContrastCountMismatch(
            f"Invalid number of channel contrast options passed: {len(modes)} "
            f"(must either be 1 or equal to the number of channels ({channel_count}))"
        )

    defaults = defaults or {}
    resolved = {}
    for channel in range(1, channel_count + 1):
        if len(modes) == 1:
            mode = modes[0]
        elif modes:
            mode = modes[channel - 1]
        else:
            mode = defaults.get(channel, 'auto')
        resolved[channel] = resolve_contrast(mode, sensor_bit_depth, file_bit_depth)
    return resolved
