"""
Precomputation pipeline for stochastic texturing.

Orchestrates decorrelation, histogram transformation, inverse LUT computation,
LUT prefiltering and compression rescaling for one input map.

Example:
    >>> import numpy as np
    >>> from stochtex import MapKind, PixelBuffer, PrecomputationPipeline
    >>>
    >>> albedo = PixelBuffer.from_array(np.random.rand(256, 256, 4))
    >>> result = PrecomputationPipeline().run_map(albedo, MapKind.ALBEDO)
    >>> result.forward.shape, result.lut.shape
    ((256, 256), (9, 128))
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from enum import Enum, IntFlag

from stochtex.buffer import LookUpTable, PixelBuffer
from stochtex.color.decorrelate import ColorBasis, decorrelate
from stochtex.color.eigen import ConvergenceError
from stochtex.compression import CompressionScalers, compute_scalers, rescale
from stochtex.config import PrecomputeConfig
from stochtex.histogram import compute_forward_transform, compute_inverse_lut
from stochtex.lut.prefilter import prefilter_lut
from stochtex.numba_ops import get_threading_layer, parallel_kernels_thread_safe
from stochtex.protocols import ProgressSink
from stochtex.validators import validate_buffer, validate_channels

logger = logging.getLogger(__name__)


class StochasticLayers(IntFlag):
    """Bitmask over the nine material layers that can be sampled stochastically."""

    NONE = 0
    ALBEDO = 1 << 0
    METALLIC_SPECULAR = 1 << 1
    NORMAL = 1 << 2
    HEIGHT = 1 << 3
    OCCLUSION = 1 << 4
    EMISSION = 1 << 5
    DETAIL_MASK = 1 << 6
    DETAIL_ALBEDO = 1 << 7
    DETAIL_NORMAL = 1 << 8


class MapKind(Enum):
    """Input map kinds and their processing rules."""

    ALBEDO = "albedo"
    METALLIC = "metallic"
    SPECULAR = "specular"
    NORMAL = "normal"
    HEIGHT = "height"
    OCCLUSION = "occlusion"
    EMISSION = "emission"
    DETAIL_MASK = "detail_mask"
    DETAIL_ALBEDO = "detail_albedo"
    DETAIL_NORMAL = "detail_normal"

    @classmethod
    def parse(cls, value: MapKind | str) -> MapKind:
        """Accept a MapKind or its string value ("albedo", "detail_normal", ...)."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            valid = ", ".join(kind.value for kind in cls)
            raise ValueError(f"map_kind='{value}' is not valid. Valid options are: {valid}") from None

    @property
    def channels(self) -> tuple[int, ...]:
        """Channels processed for this kind of map."""
        return CHANNEL_SELECTIONS[self]

    @property
    def decorrelated(self) -> bool:
        """Whether RGB is decorrelated before the histogram transform."""
        return self in DECORRELATED_KINDS

    @property
    def layer(self) -> StochasticLayers:
        """Layer bit that selects this map for stochastic sampling."""
        return LAYER_OF_KIND[self]

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title() + " Map"


# Albedo: RGB + transparency; Metallic: metallic (R) + smoothness (A);
# Specular: specular (RGB) + smoothness (A); Height and Occlusion live in G;
# Detail Mask lives in A.
CHANNEL_SELECTIONS: dict[MapKind, tuple[int, ...]] = {
    MapKind.ALBEDO: (0, 1, 2, 3),
    MapKind.METALLIC: (0, 3),
    MapKind.SPECULAR: (0, 1, 2, 3),
    MapKind.NORMAL: (0, 1, 2),
    MapKind.HEIGHT: (1,),
    MapKind.OCCLUSION: (1,),
    MapKind.EMISSION: (0, 1, 2),
    MapKind.DETAIL_MASK: (3,),
    MapKind.DETAIL_ALBEDO: (0, 1, 2),
    MapKind.DETAIL_NORMAL: (0, 1, 2),
}

DECORRELATED_KINDS = frozenset(
    {
        MapKind.ALBEDO,
        MapKind.NORMAL,
        MapKind.EMISSION,
        MapKind.DETAIL_ALBEDO,
        MapKind.DETAIL_NORMAL,
    }
)

LAYER_OF_KIND: dict[MapKind, StochasticLayers] = {
    MapKind.ALBEDO: StochasticLayers.ALBEDO,
    MapKind.METALLIC: StochasticLayers.METALLIC_SPECULAR,
    MapKind.SPECULAR: StochasticLayers.METALLIC_SPECULAR,
    MapKind.NORMAL: StochasticLayers.NORMAL,
    MapKind.HEIGHT: StochasticLayers.HEIGHT,
    MapKind.OCCLUSION: StochasticLayers.OCCLUSION,
    MapKind.EMISSION: StochasticLayers.EMISSION,
    MapKind.DETAIL_MASK: StochasticLayers.DETAIL_MASK,
    MapKind.DETAIL_ALBEDO: StochasticLayers.DETAIL_ALBEDO,
    MapKind.DETAIL_NORMAL: StochasticLayers.DETAIL_NORMAL,
}


def is_selected(mask: int | StochasticLayers, kind: MapKind | str) -> bool:
    """
    Check whether a material layer mask selects a map kind.

    Example:
        >>> is_selected(StochasticLayers.ALBEDO | StochasticLayers.NORMAL, "normal")
        True
    """
    layer = MapKind.parse(kind).layer
    return (int(mask) & int(layer)) == int(layer)


@dataclass
class PrecomputationResult:
    """
    Output of one pipeline run.

    Attributes:
        forward: Gaussianized texture T(input), same size as the input
        lut: Prefiltered inverse transform, LUT_WIDTH x (floor(log2(width)) + 1)
        basis: Color basis when decorrelation ran, else None
        scalers: Compression scalers when decorrelation ran, else None
        channels: Channels that were processed
        map_kind: Kind of the processed map, if known
    """

    forward: PixelBuffer
    lut: LookUpTable
    basis: ColorBasis | None = None
    scalers: CompressionScalers | None = None
    channels: tuple[int, ...] = ()
    map_kind: MapKind | None = None

    @property
    def decorrelated(self) -> bool:
        return self.basis is not None


class PrecomputationPipeline:
    """
    Stateless precomputation pipeline.

    Every call works on its own buffers; a single instance can be reused for
    any number of maps.

    Example:
        >>> pipeline = PrecomputationPipeline(PrecomputeConfig(block_compressed=True))
        >>> result = pipeline.run(buffer, channels=(0, 1, 2), uses_decorrelation=True)
        >>> result.scalers.enabled
        True
    """

    __slots__ = ("config", "progress")

    def __init__(self, config: PrecomputeConfig | None = None, progress: ProgressSink | None = None):
        """
        Initialize the pipeline.

        Args:
            config: Precomputation options (default: PrecomputeConfig())
            progress: Optional sink notified once per channel per stage
        """
        if progress is not None and not isinstance(progress, ProgressSink):
            raise TypeError(
                f"progress must implement on_step(current, total, label), "
                f"got {type(progress).__name__}"
            )
        self.config = config if config is not None else PrecomputeConfig()
        self.progress = progress

    def run_map(self, input: PixelBuffer, map_kind: MapKind | str) -> PrecomputationResult:
        """Run with the channel selection and decorrelation rule of a map kind."""
        kind = MapKind.parse(map_kind)
        return self.run(input, kind.channels, kind.decorrelated, kind)

    @validate_buffer("input", 1)
    @validate_channels("channels", 2)
    def run(
        self,
        input: PixelBuffer,
        channels: Sequence[int],
        uses_decorrelation: bool,
        map_kind: MapKind | str | None = None,
    ) -> PrecomputationResult:
        """
        Precompute the Gaussianized texture and inverse LUT for one map.

        Steps:
            1. Decorrelate RGB (if uses_decorrelation)
            2. Forward transform of every channel, then inverse LUT row 0
            3. Prefilter every LUT channel across mip levels
            4. Compression scalers and rescale (if decorrelation ran)

        Args:
            input: Linear-space texture (not modified)
            channels: Channel indices to process
            uses_decorrelation: Decorrelate RGB before the transform
            map_kind: Kind of map, used for labels and carried in the result

        Returns:
            PrecomputationResult

        Raises:
            ConvergenceError: If decorrelation fails and the config does not
                allow falling back to raw RGB
        """
        kind = MapKind.parse(map_kind) if map_kind is not None else None
        channels = tuple(int(c) for c in channels)
        label = kind.label if kind is not None else "Input Map"
        config = self.config

        total = len(channels) * (3 if config.prefilter else 2) + (2 if uses_decorrelation else 0)
        step = 0

        def report(description: str) -> None:
            nonlocal step
            step += 1
            if self.progress is not None:
                self.progress.on_step(step, total, f"{label}: {description}")

        logger.info(
            "[Pipeline] %s %dx%d: channels %s, decorrelation %s",
            label,
            input.width,
            input.height,
            channels,
            "on" if uses_decorrelation else "off",
        )

        # 1. Decorrelated color space
        source = input
        basis = None
        if uses_decorrelation:
            try:
                source, basis = decorrelate(
                    input,
                    sort_axes=config.sort_axes,
                    max_sweeps=config.max_jacobi_sweeps,
                )
            except ConvergenceError:
                if not config.skip_decorrelation_on_failure:
                    raise
                logger.warning(
                    "[Pipeline] %s: eigen solver did not converge, processing raw RGB", label
                )
            report("decorrelation")

        # 2. Histogram transformation T and inverse T^-1
        forward = PixelBuffer.zeros(source.width, source.height)
        for channel in channels:
            forward = compute_forward_transform(source, channel, output=forward)
            report(f"forward transform channel {channel}")

        lut = LookUpTable.for_texture(source.width)
        for channel in channels:
            lut = compute_inverse_lut(source, channel, lut=lut)
            report(f"inverse LUT channel {channel}")

        # 3. Mip-aware LUT prefiltering
        if config.prefilter:
            for channel in channels:
                lut = prefilter_lut(forward, lut, channel)
                report(f"prefilter channel {channel}")

        # 4. Block-compression rescaling
        scalers = None
        if uses_decorrelation:
            if basis is not None:
                scalers = compute_scalers(basis, config.block_compressed)
                forward = rescale(forward, scalers)
            report("compression rescale")

        logger.info(
            "[Pipeline] %s done: LUT %dx%d, scalers %s",
            label,
            lut.width,
            lut.height,
            scalers.values if scalers is not None else None,
        )
        return PrecomputationResult(
            forward=forward,
            lut=lut,
            basis=basis,
            scalers=scalers,
            channels=channels,
            map_kind=kind,
        )


def precompute(
    input: PixelBuffer,
    map_kind: MapKind | str,
    config: PrecomputeConfig | None = None,
    progress: ProgressSink | None = None,
) -> PrecomputationResult:
    """
    Functional shortcut for PrecomputationPipeline(config, progress).run_map().

    Example:
        >>> result = precompute(height_buffer, "height")
        >>> result.channels
        (1,)
    """
    return PrecomputationPipeline(config, progress).run_map(input, map_kind)


def precompute_many(
    maps: Mapping[MapKind | str, PixelBuffer],
    config: PrecomputeConfig | None = None,
    max_workers: int | None = None,
) -> dict[MapKind, PrecomputationResult]:
    """
    Precompute several maps concurrently.

    Maps are independent, so each one runs on its own worker thread with its
    own buffers. The compiled kernels release the GIL.

    Concurrent launches of parallel kernels need the tbb or omp threading
    layer. Under Numba's workqueue layer the maps run one at a time on a
    single worker instead.

    Args:
        maps: Input buffer per map kind
        config: Shared precomputation options
        max_workers: Thread pool size (default: ThreadPoolExecutor default;
            forced to 1 under the workqueue threading layer)

    Returns:
        Result per map kind

    Raises:
        The first error raised by any map, after every map has finished
    """
    kinds = {MapKind.parse(kind): buffer for kind, buffer in maps.items()}
    if not kinds:
        return {}

    workers = max_workers
    if (workers is None or workers > 1) and not parallel_kernels_thread_safe():
        logger.warning(
            "[Pipeline] Threading layer '%s' is not thread safe, precomputing %d maps sequentially. "
            "Install tbb to run them concurrently.",
            get_threading_layer(),
            len(kinds),
        )
        workers = 1

    results: dict[MapKind, PrecomputationResult] = {}
    errors: list[tuple[MapKind, BaseException]] = []

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(precompute, buffer, kind, config): kind for kind, buffer in kinds.items()
        }
        for future in as_completed(futures):
            kind = futures[future]
            error = future.exception()
            if error is not None:
                logger.error("[Pipeline] %s failed: %s", kind.label, error)
                errors.append((kind, error))
            else:
                results[kind] = future.result()

    if errors:
        raise errors[0][1]

    # Preserve the caller's ordering
    return {kind: results[kind] for kind in kinds}
