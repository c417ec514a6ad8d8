"""
Microscope profiles: how one input frame is cut into output tiles
"""
from dataclasses import dataclass
from typing import Callable, Dict, Sequence, Tuple

from .errors import UnknownMicroscope


# CalMorph tile size; the cobra cutter works on the rotated 520x696 shape
OUT_IMG_WIDTH = 696
OUT_IMG_HEIGHT = 520


@dataclass(frozen=True)
class MicroscopeProfile:
    name: str
    tiles_per_frame: int
    sensor_bit_depth: int
    transform_ops: Tuple[str, ...] = ()


def cobra(**_) -> MicroscopeProfile:
    """
    2560x2160 frames cut into 5x3 tiles of 520x696, rotated afterwards.

    Rows are shaved evenly top and bottom so the frame height divides by
    the tile width; tiles overlap horizontally by 10 pixels.
    """
    in_img_height = 2160
    shave = (in_img_height - in_img_height // OUT_IMG_WIDTH * OUT_IMG_WIDTH) // 2
    ops = (
        '-shave', f'0x{shave}',
        '-crop', '5x3+10+0@',
        '+repage',
        '+adjoin',
        '-rotate', '90',
    )
    return MicroscopeProfile('cobra', tiles_per_frame=15, sensor_bit_depth=11, transform_ops=ops)


def joe(**_) -> MicroscopeProfile:
    """1392x1040 frames cut into 2x2 tiles"""
    ops = ('-crop', '2x2@', '+repage', '+adjoin')
    return MicroscopeProfile('joe', tiles_per_frame=4, sensor_bit_depth=12, transform_ops=ops)


def custom(transform_ops: Sequence[str] = (), tiles_per_frame: int = 1,
           sensor_bit_depth: int = 11) -> MicroscopeProfile:
    """Caller-supplied ImageMagick operations"""
    ops = []
    for op in transform_ops:
        # '-crop 2x2@' given as one string splits into separate arguments
        ops.extend(str(op).split())
    return MicroscopeProfile('custom', tiles_per_frame=int(tiles_per_frame),
                             sensor_bit_depth=int(sensor_bit_depth), transform_ops=tuple(ops))


PROFILES: Dict[str, Callable[..., MicroscopeProfile]] = {
    'cobra': cobra,
    'joe': joe,
    'custom': custom,
}


def get_profile(name: str, **params) -> MicroscopeProfile:
    """
    Build a microscope profile by name.

    Args:
        name: Registered profile name
        **params: Custom profile parameters; fixed profiles ignore them
    """
    try:
        factory = PROFILES[name]
    except KeyError:
        raise UnknownMicroscope(
            f"Unknown microscope {name!r}. Expecting {', '.join(PROFILES)}."
        ) from None
    return factory(**params)
