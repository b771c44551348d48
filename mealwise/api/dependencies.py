"""Shared dependencies for API routes."""

import asyncio
import functools
import threading
from typing import Any, Callable

from fastapi import Request

from ..planning.service import MealPlanService


def get_service(request: Request) -> MealPlanService:
    """Dependency to get the meal plan service."""
    return request.app.state.service


async def run_cancellable(func: Callable[..., Any], *args, **kwargs) -> Any:
    """Run a blocking pipeline call in the executor.

    If the request task is cancelled (client went away), the pipeline's
    cancel event is set so no further generation attempts are made.
    """
    cancel = threading.Event()
    loop = asyncio.get_running_loop()
    call = functools.partial(func, *args, cancel=cancel, **kwargs)
    try:
        return await loop.run_in_executor(None, call)
    except asyncio.CancelledError:
        cancel.set()
        raise


async def run_blocking(func: Callable[..., Any], *args, **kwargs) -> Any:
    """Run a blocking repository call in the executor."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))
