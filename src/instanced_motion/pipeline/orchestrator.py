"""
Animation Run Orchestrator
==========================

Single responsibility: Coordinate a complete animation run.

This module orchestrates every step of a run, from loading templates to
releasing the device buffer, by delegating to PipelineStages.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import torch

from instanced_motion.pipeline.config import AnimationConfig
from instanced_motion.pipeline.driver import FrameDriver
from instanced_motion.pipeline.stages import PipelineStages, create_run_output_structure
from instanced_motion.pipeline.state import AnimationState
from instanced_motion.rendering.stats import FrameStatsConsumer
from instanced_motion.verification.compare import ComparisonResult
from instanced_motion.utils.logging import PACKAGE_LOGGER, get_logger, log_banner, setup_logger

logger = get_logger(__name__)


@dataclass
class RunResult:
    """
    Outcome of an animation run.

    Attributes:
        run_dir: Output directory of the run
        frames: Frames animated
        elapsed: Final global animation time
        wall_time: Seconds spent animating
        average_fps: Completed frames per wall-clock second over the whole run
        transfers: Host -> device uploads performed
        comparison: Verification outcome (verification mode only)
    """

    run_dir: Path
    frames: int
    elapsed: float
    wall_time: float
    average_fps: float
    transfers: int
    comparison: Optional[ComparisonResult] = None

    @property
    def passed(self) -> bool:
        """True unless a verification comparison failed."""
        return self.comparison is None or self.comparison.passed


def run_animation(config: AnimationConfig) -> RunResult:
    """
    Execute a complete animation run.

    Stages:
    1. Load templates (PipelineStages.prepare_templates)
    2. Pack the scene (PipelineStages.build_scene)
    3. Allocate the shared buffer and the animation state
    4. Animate frames (PipelineStages.run_frames)
    5. Verify the final buffer (PipelineStages.verify, verification mode only)

    The buffer is released exactly once on every exit path, including
    KeyboardInterrupt, after any in-flight frame has finished.

    Args:
        config: AnimationConfig with all run settings

    Returns:
        RunResult

    Raises:
        NotFoundError, ParseError: If templates cannot be loaded
        CapacityExceeded: If the scene exceeds a ceiling (no device
            allocation has happened yet)
        DeviceError: If an accelerator operation fails
        OwnershipResolutionMiss: If the layout integrity check trips
    """
    run_dir, log_file, dump_file = create_run_output_structure(
        config.output_dir, config.timestamp
    )

    setup_logger(
        name=PACKAGE_LOGGER,
        verbose=config.verbose,
        log_file=log_file,
        log_level=config.log_level
    )
    log = logger.info

    log_banner(log, "INSTANCED MESH ANIMATION")
    log(f"Mode: {'VERIFICATION' if config.verification_mode else 'DISPLAY'}")
    log(f"Device: {config.device}")
    log(f"Resolver: {config.resolver}")
    log("")

    store = PipelineStages.prepare_templates(config, log)
    layout = PipelineStages.build_scene(config, store, log)

    log("STEP 3: Allocating shared animation buffer...")
    state = AnimationState.from_layout(layout, config.device)
    log(f"  Buffer: {layout.total_vertices:,} x 4 float32 on {config.device}")
    log("")

    consumer = FrameStatsConsumer(log_every=0 if config.verification_mode else config.log_every)
    driver = FrameDriver(
        time_step=config.time_step,
        resolver=config.resolver,
        block_dim=config.block_dim,
        blocks_per_dispatch=config.blocks_per_dispatch,
        miss_frame_limit=config.miss_frame_limit,
        consumer=consumer,
    )

    comparison = None
    try:
        wall_time = PipelineStages.run_frames(config, driver, state, log)

        if config.verification_mode:
            comparison = PipelineStages.verify(config, state, dump_file, log)
    finally:
        consumer.cleanup()
        state.buffer.close()
        state.device_manager.clear_cache()
        if config.device.type == 'cuda':
            torch.cuda.empty_cache()

    result = RunResult(
        run_dir=run_dir,
        frames=state.frame_index,
        elapsed=state.elapsed,
        wall_time=wall_time,
        average_fps=state.frame_index / wall_time if wall_time > 0 else 0.0,
        transfers=state.device_manager.get_transfer_count(),
        comparison=comparison,
    )

    log_banner(log, "RESULTS")
    log(f"Frames: {result.frames:,}")
    log(f"Average FPS: {result.average_fps:.1f}")
    log(f"Device uploads: {result.transfers:,}")
    log(f"Session log: {log_file}")
    log_banner(log, "SUCCESS!" if result.passed else "VERIFICATION FAILED")

    return result
