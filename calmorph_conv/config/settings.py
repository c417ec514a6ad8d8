"""
Immutable run settings resolved once from a Config
"""
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Optional

from ..core.contrast import ContrastParams, resolve_channel_contrasts
from ..core.errors import ConfigurationError, MissingPlateData
from ..core.genotypes import find_plate_table
from ..core.naming import FrameFilenameCodec
from ..core.plate import PlateLayout, plate_layout
from ..core.profiles import MicroscopeProfile, get_profile
from ..core.utils import (
    detect_digit_width,
    infer_fields_per_well,
    list_input_frames,
    read_file_bit_depth,
    resolve_jobs,
)
from .config import Config


def _as_int(value, key: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}") from None


@dataclass(frozen=True)
class ConversionSettings:
    """
    Everything a conversion run needs, validated up front.

    Built by from_config() before any task is dispatched, so every
    configuration error surfaces here. Shared read-only by all workers.
    """
    input_dir: Path
    output_dir: Path
    layout: PlateLayout
    profile: MicroscopeProfile
    codec: FrameFilenameCodec
    channel_count: int
    fields_per_well: int
    file_bit_depth: int
    contrasts: Dict[int, ContrastParams] = field(default_factory=dict)
    plate_csv: Optional[Path] = None
    genotype_column: int = 2
    out_depth: int = 8
    overwrite: bool = False
    quiet: bool = False
    jobs: int = 1
    executable: str = 'convert'

    @property
    def tiles_per_frame(self) -> int:
        return self.profile.tiles_per_frame

    @classmethod
    def from_config(cls, config: Config,
                    input_dir: Optional[Path] = None,
                    output_dir: Optional[Path] = None,
                    plate_csv: Optional[Path] = None) -> 'ConversionSettings':
        """
        Resolve settings, inspecting the input directory where values
        are left to auto-detection (digit width, fields, file bit depth).

        Raises:
            ConfigurationError: Any invalid or undeterminable setting
        """
        input_dir = Path(input_dir or config.get('input.dir') or '.')
        output_dir = Path(output_dir or config.get('output.dir') or input_dir)

        layout = plate_layout(config.get('plate.wells'))
        try:
            profile = get_profile(config.get('microscope.name'), **(config.get('microscope.custom') or {}))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid custom microscope settings: {e}") from e
        channel_count = _as_int(config.get('microscope.channels'), 'microscope.channels')
        if channel_count < 1:
            raise ConfigurationError(f"Number of channels must be positive, got {channel_count}")

        codec = FrameFilenameCodec(
            prefix=str(config.get('input.prefix')),
            channel_sep=str(config.get('input.channel_sep')),
            ext=str(config.get('input.ext')),
            group_prefix=str(config.get('output.group_prefix')),
            group_suffix=str(config.get('output.group_suffix')),
            out_ext=str(config.get('output.ext')),
            channel_symbols=config.channel_map('output.channel_symbols'),
        )
        # Unmapped channels are a configuration error, not a per-task one
        for channel in range(1, channel_count + 1):
            codec.symbol(channel)

        frames = list_input_frames(input_dir, codec.prefix, codec.ext)

        digit_width = config.get('input.digit_width')
        if digit_width is None:
            digit_width = detect_digit_width(frames, codec)
        codec = replace(codec, digit_width=_as_int(digit_width, 'input.digit_width'))

        fields = config.get('microscope.fields')
        if fields is None:
            fields = infer_fields_per_well(frames, codec, layout.well_count, channel_count)
        fields = _as_int(fields, 'microscope.fields')
        if fields < 1:
            raise ConfigurationError(f"Number of fields must be positive, got {fields}")

        file_bit_depth = config.get('input.file_bit_depth')
        if file_bit_depth == 'auto':
            if not frames:
                raise ConfigurationError("No input frames to read the file bit depth from")
            file_bit_depth = read_file_bit_depth(frames[0])
        file_bit_depth = _as_int(file_bit_depth, 'input.file_bit_depth')

        contrasts = resolve_channel_contrasts(
            config.get('contrast.modes') or [],
            channel_count,
            profile.sensor_bit_depth,
            file_bit_depth,
            defaults=config.channel_map('contrast.defaults'),
        )

        csv = plate_csv or config.get('plate.csv')
        if csv is None and config.get('plate.search_input_dir'):
            csv = find_plate_table(input_dir)
            if csv is None:
                raise MissingPlateData(
                    f"No .csv plate ID file was found in {input_dir}. "
                    f"Does the plate id file not have a .csv extension?"
                )

        try:
            jobs = resolve_jobs(config.get('parallel.jobs'))
        except ValueError:
            raise ConfigurationError(f"Invalid jobs setting: {config.get('parallel.jobs')!r}") from None

        return cls(
            input_dir=input_dir,
            output_dir=output_dir,
            layout=layout,
            profile=profile,
            codec=codec,
            channel_count=channel_count,
            fields_per_well=fields,
            file_bit_depth=file_bit_depth,
            contrasts=contrasts,
            plate_csv=Path(csv) if csv else None,
            genotype_column=_as_int(config.get('plate.genotype_column', 2), 'plate.genotype_column'),
            out_depth=_as_int(config.get('output.depth'), 'output.depth'),
            overwrite=bool(config.get('output.overwrite')),
            quiet=bool(config.get('logging.quiet')),
            jobs=jobs,
            executable=str(config.get('engine.executable')),
        )
