"""
Per-item boundary for fetch and validation batches.

``run_step()`` times one dataset's work, turns any exception into an error
StepResult and logs a one-line step summary, so a single bad dataset can
never abort its batch. Known failure modes (network, filesystem, parse)
are recorded as a short ``Type: message`` string; anything else keeps the
full traceback because it points at a bug rather than at bad input.
"""

import traceback
from typing import Callable, TypeVar

import pandas as pd
import requests

from natsci_data.logging_config import StepTimer, get_pipeline_logger, log_step_summary
from natsci_data.pipeline_types import StepResult, StepStatus

T = TypeVar("T")

log = get_pipeline_logger(__name__)

# Failures caused by the dataset or its host, not by this package.
DATASET_ERRORS = (
    OSError,
    ValueError,
    KeyError,
    requests.RequestException,
    pd.errors.EmptyDataError,
    pd.errors.ParserError,
)


def run_step(
    step_name: str,
    fn: Callable[..., T],
    *args,
    input_summary: dict | None = None,
    output_summary_fn: Callable[[T], dict] | None = None,
    expected_exceptions: tuple[type[Exception], ...] = DATASET_ERRORS,
    **kwargs,
) -> tuple[StepResult, T | None]:
    """Run ``fn(*args, **kwargs)`` for one dataset of a batch.

    Parameters
    ----------
    step_name : str
        ``"fetch:<name>"`` or ``"validate:<name>"``.
    fn : Callable
        The per-dataset work function.
    input_summary : dict, optional
        URL or path the step worked on.
    output_summary_fn : callable, optional
        Maps *fn*'s return value to the dict stored in
        ``StepResult.output_summary`` (size and MD5 for a fetch, dimensions
        and rule outcome for a validation). Not called when *fn* raises or
        returns None.
    expected_exceptions : tuple
        Exception types recorded as ``Type: message`` without a traceback.

    Returns
    -------
    tuple[StepResult, T | None]
        The return value is None when *fn* raised.
    """
    input_summary = input_summary or {}
    result_data = None
    error = None

    with StepTimer() as timer:
        try:
            result_data = fn(*args, **kwargs)
        except expected_exceptions as exc:
            error = f"{type(exc).__name__}: {exc}"
            log.error("%s failed: %s", step_name, error)
        except Exception:
            error = traceback.format_exc()
            log.exception("%s failed unexpectedly", step_name)

    if error is not None:
        log_step_summary(log, step_name, StepStatus.ERROR.value,
                         input_summary=input_summary,
                         timing_seconds=timer.elapsed)
        return StepResult(
            step_name=step_name,
            status=StepStatus.ERROR.value,
            input_summary=input_summary,
            error=error,
            timing_seconds=timer.elapsed,
        ), None

    out_summary = {}
    if output_summary_fn is not None and result_data is not None:
        out_summary = output_summary_fn(result_data)

    log_step_summary(
        log, step_name, StepStatus.SUCCESS.value,
        input_summary=input_summary,
        output_summary=out_summary,
        timing_seconds=timer.elapsed,
    )
    return StepResult(
        step_name=step_name,
        status=StepStatus.SUCCESS.value,
        input_summary=input_summary,
        output_summary=out_summary,
        timing_seconds=timer.elapsed,
    ), result_data
