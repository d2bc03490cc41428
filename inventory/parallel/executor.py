"""
inventory/parallel/executor.py - Parallel task executor

Fan-out / join over a ThreadPoolExecutor. Every task yields a TaskResult, so
one task's failure never unwinds into the caller or into other tasks.

Components:
- ParallelConfig: worker count, batch timeout, retry settings
- TaskSpec: one unit of work
- ParallelExecutor: runs TaskSpecs and joins their results

Example:
    tasks = [
        TaskSpec(identifier="compute", region="us-east-1", func=lambda: fetch_ec2(session, "us-east-1")),
        TaskSpec(identifier="database", region="us-east-1", func=lambda: fetch_rds(session, "us-east-1")),
    ]
    result = ParallelExecutor(ParallelConfig(max_workers=6, timeout=60)).execute(tasks)
    for failed in result.failed:
        print(failed.error)
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Generic, TypeVar

from .rate_limiter import TokenBucketRateLimiter
from .retry import RetryConfig, categorize_error, get_error_code, is_retryable
from .types import ErrorCategory, ParallelExecutionResult, TaskError, TaskResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _clear_exception_chain(e: BaseException) -> None:
    """Drop tracebacks so worker frames are not kept alive by stored errors"""
    e.__traceback__ = None
    if e.__context__ is not None:
        e.__context__.__traceback__ = None
    if e.__cause__ is not None:
        e.__cause__.__traceback__ = None


@dataclass
class ParallelConfig:
    """Parallel execution settings

    Attributes:
        max_workers: Maximum concurrent threads (1~100)
        timeout: Seconds to wait for the whole batch, measured from submission.
            Tasks still running afterwards are reported as TIMEOUT failures.
            None waits indefinitely.
        retry_config: In-task retry settings (None disables retrying)
        name: Thread name prefix, used in logs
    """

    max_workers: int = 20
    timeout: float | None = None
    retry_config: RetryConfig | None = None
    name: str = "inventory"

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.max_workers > 100:
            self.max_workers = 100
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout}")


@dataclass
class TaskSpec(Generic[T]):
    """One unit of parallel work

    Attributes:
        identifier: Label used in results and logs
        region: Target region
        func: Zero-argument callable doing the work
        rate_limiter: Optional limiter acquired before each attempt
    """

    identifier: str
    region: str
    func: Callable[[], T]
    rate_limiter: TokenBucketRateLimiter | None = None


class ParallelExecutor:
    """Runs TaskSpecs on a thread pool and joins their results

    Features:
    - ThreadPoolExecutor based fan-out
    - Optional per-task rate limiting
    - Exponential backoff retries for retryable errors
    - Batch timeout; unfinished tasks become TIMEOUT failures and stop retrying
    """

    def __init__(self, config: ParallelConfig | None = None):
        self.config = config or ParallelConfig()

    def execute(
        self,
        tasks: Sequence[TaskSpec[T]],
        on_result: Callable[[TaskResult[T]], None] | None = None,
    ) -> ParallelExecutionResult[T]:
        """Run all tasks and wait for them (bounded by config.timeout)

        Args:
            tasks: Work items
            on_result: Called on the calling thread as each result arrives

        Returns:
            ParallelExecutionResult with exactly one TaskResult per task
        """
        if not tasks:
            return ParallelExecutionResult()

        workers = min(self.config.max_workers, len(tasks))
        logger.debug(f"[{self.config.name}] starting {len(tasks)} task(s), max_workers={workers}")

        results: list[TaskResult[T]] = []
        stop = threading.Event()
        start_time = time.monotonic()

        def emit(result: TaskResult[T]) -> None:
            results.append(result)
            if on_result:
                on_result(result)

        pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix=self.config.name)
        futures: dict[Future[TaskResult[T]], TaskSpec[T]] = {
            pool.submit(self._execute_single, task, stop): task for task in tasks
        }
        pending = set(futures)

        try:
            for future in as_completed(futures, timeout=self.config.timeout):
                pending.discard(future)
                emit(self._unwrap(future, futures[future]))
        except FutureTimeoutError:
            stop.set()
            elapsed_ms = (time.monotonic() - start_time) * 1000
            for future in list(pending):
                task = futures[future]
                if future.done():
                    emit(self._unwrap(future, task))
                    continue
                future.cancel()
                logger.warning(f"[{task.identifier}/{task.region}] no result within {self.config.timeout}s")
                emit(
                    TaskResult(
                        identifier=task.identifier,
                        region=task.region,
                        success=False,
                        error=TaskError(
                            identifier=task.identifier,
                            region=task.region,
                            category=ErrorCategory.TIMEOUT,
                            error_code="Timeout",
                            message=f"no result within {self.config.timeout:g}s",
                        ),
                        duration_ms=elapsed_ms,
                    )
                )
        finally:
            # hung provider calls keep their thread; nobody waits on them
            pool.shutdown(wait=False, cancel_futures=True)

        exec_result = ParallelExecutionResult(results=tuple(results))
        logger.debug(
            f"[{self.config.name}] done: ok {exec_result.success_count}, failed {exec_result.error_count}, "
            f"{(time.monotonic() - start_time) * 1000:.0f}ms"
        )
        return exec_result

    def _unwrap(self, future: Future[TaskResult[T]], task: TaskSpec[T]) -> TaskResult[T]:
        """Result of a finished future; executor-level failures become TaskErrors"""
        try:
            return future.result()
        except Exception as e:
            logger.error(f"Executor failure [{task.identifier}/{task.region}]: {e}")
            _clear_exception_chain(e)
            return TaskResult(
                identifier=task.identifier,
                region=task.region,
                success=False,
                error=TaskError(
                    identifier=task.identifier,
                    region=task.region,
                    category=ErrorCategory.UNKNOWN,
                    error_code="ExecutorError",
                    message=str(e),
                    original_exception=e,
                ),
            )

    def _execute_single(self, task: TaskSpec[T], stop: threading.Event) -> TaskResult[T]:
        """Run one task with rate limiting and retries (worker thread)"""
        start_time = time.monotonic()
        retry_config = self.config.retry_config or RetryConfig(max_retries=0)
        last_error: Exception | None = None

        for attempt in range(retry_config.max_retries + 1):
            if task.rate_limiter and not task.rate_limiter.acquire():
                return TaskResult(
                    identifier=task.identifier,
                    region=task.region,
                    success=False,
                    error=TaskError(
                        identifier=task.identifier,
                        region=task.region,
                        category=ErrorCategory.THROTTLING,
                        error_code="RateLimitTimeout",
                        message="Rate limiter timeout",
                        retries=attempt,
                    ),
                    duration_ms=(time.monotonic() - start_time) * 1000,
                )

            try:
                data = task.func()
                return TaskResult(
                    identifier=task.identifier,
                    region=task.region,
                    success=True,
                    data=data,
                    duration_ms=(time.monotonic() - start_time) * 1000,
                )
            except Exception as e:
                last_error = e
                if not is_retryable(e) or attempt >= retry_config.max_retries or stop.is_set():
                    break

                delay = retry_config.get_delay(attempt)
                logger.debug(f"[{task.identifier}/{task.region}] attempt {attempt + 1} failed, retrying in {delay:.2f}s")
                if stop.wait(delay):
                    break

        assert last_error is not None
        _clear_exception_chain(last_error)
        return TaskResult(
            identifier=task.identifier,
            region=task.region,
            success=False,
            error=TaskError(
                identifier=task.identifier,
                region=task.region,
                category=categorize_error(last_error),
                error_code=get_error_code(last_error),
                message=str(last_error),
                retries=attempt,
                original_exception=last_error,
            ),
            duration_ms=(time.monotonic() - start_time) * 1000,
        )
