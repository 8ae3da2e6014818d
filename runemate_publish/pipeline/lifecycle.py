"""Stage lifecycle management - handles state transitions."""

import logging

from runemate_publish.errors import PipelineIOError, PublishError
from runemate_publish.pipeline.registry import Stage, StageState

logger = logging.getLogger(__name__)


class StageLifecycle:
    """Runs a stage and moves it through pending → running → succeeded / failed."""

    def execute(self, stage: Stage) -> None:
        """Run ``stage`` once.

        Errors propagate to the caller after the stage is marked FAILED.
        Bare filesystem errors are wrapped in PipelineIOError.
        """
        if stage.state == StageState.SUCCEEDED:
            logger.debug(f"Stage {stage.path} already succeeded, skip")
            return

        stage.state = StageState.RUNNING
        logger.info(f"> {stage.path}")

        try:
            stage.run()
        except PublishError as e:
            self._fail(stage, e)
            raise
        except OSError as e:
            self._fail(stage, e)
            raise PipelineIOError(f"{stage.path} failed: {e}") from e
        except Exception as e:
            self._fail(stage, e)
            raise

        stage.state = StageState.SUCCEEDED
        logger.debug(f"Stage {stage.path} succeeded")

    def _fail(self, stage: Stage, error: Exception) -> None:
        stage.state = StageState.FAILED
        stage.error = str(error)
        logger.error(f"Stage {stage.path} failed: {error}")
