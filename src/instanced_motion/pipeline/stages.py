"""
Pipeline Stages
===============

Single responsibility: Break down an animation run into discrete, testable stages.

Each stage handles one phase of the run with clear inputs and outputs:
loading templates, packing the scene, animating frames and verifying the
final buffer.
"""

import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Tuple

from instanced_motion.core.exceptions import DeviceError
from instanced_motion.core.layout import (
    SceneLayout,
    UniformVelocitySampler,
    alternating_assignment,
    build_layout,
)
from instanced_motion.core.mesh_io import TemplateStore
from instanced_motion.pipeline.config import AnimationConfig
from instanced_motion.pipeline.driver import FrameDriver
from instanced_motion.pipeline.state import AnimationState
from instanced_motion.verification.compare import (
    ComparisonResult,
    compare_with_reference,
    snapshot_image_buffer,
    write_dump,
)
from instanced_motion.utils.logging import get_logger

logger = get_logger(__name__)


def create_run_output_structure(
    output_dir: Path,
    timestamp: Optional[str] = None
) -> Tuple[Path, Path, Path]:
    """
    Create the output directory for one run.

    Structure:
        results/<timestamp>/
        ├── session.log
        └── frame_dump.bin   (verification mode only)

    Args:
        output_dir: Base output directory
        timestamp: Optional directory name (generated if None)

    Returns:
        Tuple of (run_dir, log_file, dump_file)
    """
    if timestamp is None:
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')

    run_dir = output_dir / timestamp
    run_dir.mkdir(parents=True, exist_ok=True)

    logger.debug(f"Created output structure: {run_dir}")

    return run_dir, run_dir / 'session.log', run_dir / 'frame_dump.bin'


class PipelineStages:
    """Encapsulates individual stages of an animation run."""

    @staticmethod
    def prepare_templates(
        config: AnimationConfig,
        log: Callable[[str], None]
    ) -> TemplateStore:
        """
        Load every template once.

        Raises:
            NotFoundError: If a template file is missing
            ParseError: If a template file is malformed
        """
        log("STEP 1: Loading mesh templates...")

        store = TemplateStore()
        for path in config.template_paths:
            template_id = store.load(path)
            template = store.get(template_id)
            log(
                f"  [{template_id}] {template.name}: {template.vertex_count:,} vertices, "
                f"{template.triangle_count:,} triangles"
            )

        log(f"  Max bounding box: {store.max_bounding_box_length():.3f}")
        log("")
        return store

    @staticmethod
    def build_scene(
        config: AnimationConfig,
        store: TemplateStore,
        log: Callable[[str], None]
    ) -> SceneLayout:
        """
        Assign templates and velocities and pack the scene.

        Raises:
            CapacityExceeded: If the scene exceeds a ceiling
        """
        log("STEP 2: Building instance layout...")

        assignments = alternating_assignment(config.instances, len(store))
        sampler = UniformVelocitySampler(max_speed=config.max_speed, seed=config.seed)
        layout = build_layout(
            store,
            assignments,
            sampler,
            max_indices=config.max_indices,
            max_instances=config.max_instances,
        )

        log(f"  Instances: {layout.instance_count:,}")
        log(f"  Vertices: {layout.total_vertices:,}")
        log(f"  Indices: {layout.total_indices:,} (ceiling {config.max_indices:,})")
        log("")
        return layout

    @staticmethod
    def run_frames(
        config: AnimationConfig,
        driver: FrameDriver,
        state: AnimationState,
        log: Callable[[str], None],
        sleep: Callable[[float], None] = time.sleep,
    ) -> float:
        """
        Animate config.frames frames.

        Returns:
            Wall-clock seconds spent animating
        """
        log(f"STEP 4: Animating {config.frames:,} frames...")

        delay = config.refresh_delay_ms / 1000.0
        start = time.perf_counter()

        for _ in range(config.frames):
            driver.step(state)
            if config.should_pace_frames:
                sleep(delay)

        wall_time = time.perf_counter() - start
        log(f"  Animation time: {state.elapsed:.3f}")
        log(f"  Wall time: {wall_time:.2f}s")
        if state.total_misses:
            log(f"  Ownership misses: {state.total_misses:,} in {state.miss_frames} frames")
        log("")
        return wall_time

    @staticmethod
    def verify(
        config: AnimationConfig,
        state: AnimationState,
        dump_file: Path,
        log: Callable[[str], None]
    ) -> ComparisonResult:
        """
        Dump the final buffer and compare it with the reference.

        Raises:
            DeviceError: If reading the buffer back from the device fails
            NotFoundError: If the reference file is missing
        """
        log("STEP 5: Verifying against reference...")

        try:
            image = snapshot_image_buffer(state.buffer.read_view())
        except RuntimeError as e:
            raise DeviceError(f"Failed to read back the animation buffer from {state.device}: {e}") from e
        write_dump(dump_file, image)
        log(f"  Dump: {dump_file}")

        result = compare_with_reference(
            image, config.reference_file, epsilon=config.epsilon, threshold=config.threshold
        )
        log(f"  Mismatches: {result.mismatches:,} / {result.total:,}")
        log(f"  Result: {'PASSED' if result.passed else 'FAILED'}")
        log("")
        return result
