"""
Runtime helpers for the lazy sequence transformer.

Provides the named function registry used by declarative pipelines,
pipeline building and consumption, call counting and performance
measurement.
"""

import gc
import logging
import time
import tracemalloc
from typing import Any, Callable, Dict, List, Optional

from transformer import Transformer
from models import (
    OperationSpec, OperationType, PerformanceInfo, InvocationMetrics,
    PipelineRequest, PipelineResult, TerminalType, TransformerSettings
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """Raised when a declarative pipeline cannot be built."""
    pass


class UnknownFunctionError(PipelineError):
    """Raised when a pipeline names a function that is not registered."""
    pass


# Global function registry
FUNCTION_REGISTRY: Dict[str, Callable] = {
    "increment": lambda x: x + 1,
    "double": lambda x: x * 2,
    "square": lambda x: x * x,
    "negate": lambda x: -x,
    "to_string": str,
    "is_even": lambda x: x % 2 == 0,
    "is_odd": lambda x: x % 2 != 0,
    "is_positive": lambda x: x > 0,
    "greater_than_one": lambda x: x > 1,
    "prepend": lambda x, acc: [x] + list(acc or []),
    "add": lambda x, acc: x + acc,
    "multiply": lambda x, acc: x * acc,
}


def register_function(name: str, func: Optional[Callable] = None, replace: bool = False):
    """Register ``func`` under ``name``; usable as a decorator when ``func`` is omitted"""

    def _register(f: Callable) -> Callable:
        if name in FUNCTION_REGISTRY and not replace:
            raise PipelineError(f"Function '{name}' is already registered")
        FUNCTION_REGISTRY[name] = f
        logger.info(f"Registered function: {name}")
        return f

    if func is None:
        return _register
    return _register(func)


def get_function(name: str, registry: Optional[Dict[str, Callable]] = None) -> Callable:
    registry = FUNCTION_REGISTRY if registry is None else registry
    if name not in registry:
        logger.error(f"Unknown function requested: {name}")
        raise UnknownFunctionError(f"Function '{name}' is not registered. Available: {sorted(registry)}")
    return registry[name]


class CallCounter:
    """Callable wrapper that counts how many times it was invoked."""

    def __init__(self, func: Callable, label: Optional[str] = None):
        self.func = func
        self.label = label or getattr(func, "__name__", repr(func))
        self.calls = 0

    def __call__(self, *args, **kwargs):
        self.calls += 1
        return self.func(*args, **kwargs)

    def __repr__(self):
        return f"CallCounter({self.label!r}, calls={self.calls})"


def build_transformer(data: List[Any], operations: List[OperationSpec],
                      registry: Optional[Dict[str, Callable]] = None,
                      counters: Optional[List[CallCounter]] = None) -> Transformer:
    """Compose a Transformer from a declarative operation chain.

    When ``counters`` is given, every host function is wrapped in a
    CallCounter and appended to it. ``counters[0]`` is then an identity
    stage labelled "source" that counts elements pulled through the chain.
    """
    transformer = Transformer.from_list(data)
    if counters is not None:
        source = CallCounter(lambda x: x, "source")
        counters.append(source)
        transformer = transformer.map(source)

    for index, op in enumerate(operations):
        if op.type == OperationType.REVERSE:
            transformer = transformer.reverse()
        elif op.type == OperationType.TAKE:
            transformer = transformer.take(op.count)
        elif op.type == OperationType.DROP:
            transformer = transformer.drop(op.count)
        else:
            func = get_function(op.function, registry)
            if counters is not None:
                func = CallCounter(func, f"{index}:{op.type.value}:{op.function}")
                counters.append(func)

            if op.type == OperationType.MAP:
                transformer = transformer.map(func)
            elif op.type == OperationType.FILTER:
                transformer = transformer.filter(func)
            elif op.type == OperationType.REMOVE:
                transformer = transformer.remove(func)
            else:
                raise PipelineError(f"Unknown operation: {op.type}")

    return transformer


def consume(transformer: Transformer, terminal: TerminalType,
            function: Optional[Callable] = None, seed: Any = None) -> Any:
    """Force evaluation of ``transformer`` with the given terminal consumer"""
    if terminal == TerminalType.TO_LIST:
        return transformer.to_list()
    if terminal == TerminalType.FOLDL:
        return transformer.foldl(function, seed)
    if terminal == TerminalType.FOLDR:
        return transformer.foldr(function, seed)
    if terminal == TerminalType.ANY:
        return transformer.any(function)
    if terminal == TerminalType.ALL:
        return transformer.all(function)
    if terminal == TerminalType.SUM:
        return transformer.sum()
    if terminal == TerminalType.PRODUCT:
        return transformer.product()
    if terminal == TerminalType.LENGTH:
        return transformer.length()
    if terminal == TerminalType.FIRST:
        return transformer.first()
    raise PipelineError(f"Unknown terminal: {terminal}")


def run_pipeline(request: PipelineRequest,
                 settings: Optional[TransformerSettings] = None,
                 registry: Optional[Dict[str, Callable]] = None) -> PipelineResult:
    """Build, consume and measure a declarative pipeline.

    The run is recorded in the module performance metrics under
    ``pipeline:<terminal>``.
    """
    settings = settings or TransformerSettings()
    counters: Optional[List[CallCounter]] = [] if settings.count_invocations else None
    operations_applied = [op.type.value for op in request.operations]
    operation_name = f"pipeline:{request.terminal.value}"

    def _run():
        transformer = build_transformer(request.data, request.operations, registry, counters)

        function = None
        if request.function:
            function = get_function(request.function, registry)
            if counters is not None:
                function = CallCounter(function, f"terminal:{request.terminal.value}:{request.function}")
                counters.append(function)

        return consume(transformer, request.terminal, function, request.seed)

    try:
        performance_info = measure_performance(operation_name, _run, track_memory=settings.measure_memory)
    except Exception as e:
        logger.error(f"Pipeline run failed after operations {operations_applied}: {e}")
        raise

    result = performance_info["result"]
    processing_time_ms = performance_info["execution_time_ms"]
    logger.info(
        f"Ran pipeline {operations_applied} -> {request.terminal.value} "
        f"over {len(request.data)} elements in {processing_time_ms:.2f}ms"
    )

    invocations = None
    if counters is not None:
        source, *stages = counters
        invocations = InvocationMetrics(
            function_calls={counter.label: counter.calls for counter in stages},
            elements_pulled=source.calls,
        )

    return PipelineResult(
        ok=True,
        result=result,
        operations_applied=operations_applied,
        terminal=request.terminal,
        performance=PerformanceInfo(
            processing_time_ms=processing_time_ms,
            memory_usage_mb=performance_info["memory_usage_mb"],
            input_size=len(request.data),
            output_size=len(result) if isinstance(result, list) else None,
        ),
        invocations=invocations,
    )


def load_settings(overrides: Optional[Dict[str, Any]] = None) -> TransformerSettings:
    """Load settings from ``LAZY_FUSION_*`` environment variables and overrides.

    Explicit overrides win over the environment. The resulting log level is
    applied to this package's loggers.
    """
    settings = TransformerSettings(**(overrides or {}))
    level = getattr(logging, settings.log_level)
    for name in ("transformer", __name__):
        logging.getLogger(name).setLevel(level)
    return settings


# Global performance tracking
_performance_metrics = {
    "operations": [],
    "total_time_ms": 0.0,
    "total_memory_mb": 0.0,
    "operation_count": 0
}


def _record(performance_info: Dict[str, Any]) -> None:
    _performance_metrics["operations"].append(performance_info)
    _performance_metrics["total_time_ms"] += performance_info["execution_time_ms"]
    _performance_metrics["total_memory_mb"] += performance_info["memory_usage_mb"] or 0.0
    _performance_metrics["operation_count"] += 1


def measure_performance(operation_name: str, func, *args, track_memory: bool = True, **kwargs) -> Dict[str, Any]:
    """Measure performance of a function call with memory tracking.

    Tracing that is already running (an enclosing measurement) is left
    running; only tracing started here is stopped.
    """
    started_tracing = track_memory and not tracemalloc.is_tracing()
    if started_tracing:
        tracemalloc.start()
        gc.collect()
    start_time = time.perf_counter()

    def _peak_mb():
        if not track_memory:
            return None
        current, peak = tracemalloc.get_traced_memory()
        return peak / 1024 / 1024

    try:
        result = func(*args, **kwargs)

        performance_info = {
            "operation": operation_name,
            "execution_time_ms": (time.perf_counter() - start_time) * 1000,
            "memory_usage_mb": _peak_mb(),
            "success": True,
            "result": result,
            "result_size": len(result) if hasattr(result, "__len__") else None,
            "timestamp": time.time()
        }
        _record(performance_info)
        return performance_info

    except Exception as e:
        _record({
            "operation": operation_name,
            "execution_time_ms": (time.perf_counter() - start_time) * 1000,
            "memory_usage_mb": _peak_mb(),
            "success": False,
            "error": str(e),
            "timestamp": time.time()
        })
        raise

    finally:
        if started_tracing:
            tracemalloc.stop()


def get_performance_summary() -> Dict[str, Any]:
    """Get summary of all performance metrics"""
    if _performance_metrics["operation_count"] == 0:
        return {
            "total_operations": 0,
            "total_time_ms": 0.0,
            "total_memory_mb": 0.0,
            "avg_time_ms": 0.0,
            "avg_memory_mb": 0.0
        }

    return {
        "total_operations": _performance_metrics["operation_count"],
        "total_time_ms": _performance_metrics["total_time_ms"],
        "total_memory_mb": _performance_metrics["total_memory_mb"],
        "avg_time_ms": _performance_metrics["total_time_ms"] / _performance_metrics["operation_count"],
        "avg_memory_mb": _performance_metrics["total_memory_mb"] / _performance_metrics["operation_count"]
    }


def clear_performance_metrics():
    """Clear all performance metrics"""
    global _performance_metrics
    _performance_metrics = {
        "operations": [],
        "total_time_ms": 0.0,
        "total_memory_mb": 0.0,
        "operation_count": 0
    }
