"""
Results Writer
==============
Serializes a PipelineResult into the JSON run summary.
"""
import json
import logging
import os

from paastel_build.models.pipeline_result import PipelineResult

logger = logging.getLogger(__name__)


class ResultsWriter:
    """
    Writes the run summary so CI jobs can pick up what happened
    (embedded errors included) without scraping the console output.
    """

    @staticmethod
    def write_results(result: PipelineResult, output_path: str = "results.json") -> bool:
        """
        Write ``result`` as indented JSON. Returns False if the file could not
        be written; a summary failure never changes the run's outcome.
        """
        try:
            abs_output = os.path.abspath(output_path)
            logger.info("Writing run summary to %s", abs_output)

            with open(abs_output, "w", encoding="utf-8") as f:
                json.dump(result.model_dump(), f, indent=2)

            return True

        except OSError as e:
            logger.error("Failed to write %s: %s", output_path, e, exc_info=True)
            return False
