"""
Pydantic Models

Declarative pipeline descriptions, run results and settings for the
lazy sequence transformer.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from enum import Enum


class OperationType(str, Enum):
    """Composable and structural operations"""
    MAP = "map"
    FILTER = "filter"
    REMOVE = "remove"
    REVERSE = "reverse"
    TAKE = "take"
    DROP = "drop"


class TerminalType(str, Enum):
    """Terminal consumers that force evaluation"""
    TO_LIST = "to_list"
    FOLDL = "foldl"
    FOLDR = "foldr"
    ANY = "any"
    ALL = "all"
    SUM = "sum"
    PRODUCT = "product"
    LENGTH = "length"
    FIRST = "first"


FUNCTION_OPERATIONS = {OperationType.MAP, OperationType.FILTER, OperationType.REMOVE}
COUNT_OPERATIONS = {OperationType.TAKE, OperationType.DROP}
FUNCTION_TERMINALS = {TerminalType.FOLDL, TerminalType.FOLDR, TerminalType.ANY, TerminalType.ALL}


class OperationSpec(BaseModel):
    """A single step of a declarative pipeline"""
    type: OperationType = Field(..., description="Operation to apply")
    function: Optional[str] = Field(
        None,
        description="Registered function name for map/filter/remove",
        examples=["increment"]
    )
    count: Optional[int] = Field(
        None,
        description="Element count for take/drop; negative values act as 0"
    )

    @field_validator('function')
    @classmethod
    def validate_function(cls, v):
        """Normalize function names"""
        if v is not None:
            v = v.strip()
            if not v:
                raise ValueError("Function name cannot be empty")
        return v

    @model_validator(mode='after')
    def validate_arguments(self):
        """Check the operation carries the argument it needs"""
        if self.type in FUNCTION_OPERATIONS and self.function is None:
            raise ValueError(f"Operation '{self.type.value}' requires a function")
        if self.type in COUNT_OPERATIONS and self.count is None:
            raise ValueError(f"Operation '{self.type.value}' requires a count")
        return self


class PipelineRequest(BaseModel):
    """Source data, operation chain and terminal consumer"""
    data: List[Any] = Field(..., description="Finite source sequence")
    operations: List[OperationSpec] = Field(
        default_factory=list,
        description="Operations applied in call order"
    )
    terminal: TerminalType = Field(
        TerminalType.TO_LIST,
        description="Terminal consumer forcing evaluation"
    )
    function: Optional[str] = Field(
        None,
        description="Registered function for foldl/foldr/any/all"
    )
    seed: Any = Field(None, description="Initial accumulator for folds")

    @model_validator(mode='after')
    def validate_terminal(self):
        """Folds and any/all need a function"""
        if self.terminal in FUNCTION_TERMINALS and not self.function:
            raise ValueError(f"Terminal '{self.terminal.value}' requires a function")
        return self


class PerformanceInfo(BaseModel):
    """Timing and memory for a pipeline run"""
    processing_time_ms: float = Field(..., description="Wall time in milliseconds", ge=0)
    memory_usage_mb: Optional[float] = Field(
        None,
        description="Peak traced memory in megabytes",
        ge=0
    )
    input_size: int = Field(..., description="Number of source elements", ge=0)
    output_size: Optional[int] = Field(
        None,
        description="Number of output elements when the result is a list",
        ge=0
    )


class InvocationMetrics(BaseModel):
    """How often each host function was called during a run"""
    function_calls: Dict[str, int] = Field(
        default_factory=dict,
        description="Call count per operation label"
    )
    elements_pulled: int = Field(0, description="Source elements run through the stage", ge=0)


class PipelineResult(BaseModel):
    """Result of running a declarative pipeline"""
    ok: bool = Field(True, description="Run success status")
    result: Any = Field(..., description="Value produced by the terminal consumer")
    operations_applied: List[str] = Field(..., description="Operation types in call order")
    terminal: TerminalType = Field(..., description="Terminal consumer used")
    performance: PerformanceInfo = Field(..., description="Run performance")
    invocations: Optional[InvocationMetrics] = Field(
        None,
        description="Call counts, when invocation counting is enabled"
    )


class TransformerSettings(BaseSettings):
    """Runtime settings for pipeline runs, read from LAZY_FUSION_* environment variables"""

    model_config = SettingsConfigDict(
        env_prefix="LAZY_FUSION_",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field("INFO", description="Logging level")
    measure_memory: bool = Field(True, description="Track peak memory with tracemalloc")
    count_invocations: bool = Field(True, description="Count host function calls")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Validate the logging level name"""
        level = str(v).strip().upper()
        valid_levels = ["ERROR", "WARNING", "INFO", "DEBUG"]
        if level not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Valid levels: {valid_levels}")
        return level
