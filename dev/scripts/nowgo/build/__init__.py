"""
nowgo.build - Build orchestration for Go serverless functions.

Provides handler discovery, build plan selection, source transformation,
toolchain driving and packaging.
"""

from nowgo.build.config import (
    CONFIG,
    MAX_LAMBDA_SIZE,
    HANDLER_FILENAME,
    RUNTIME,
    BuildConfig,
)
from nowgo.build.handler import HandlerDescriptor
from nowgo.build.plan import BuildPlan, LegacyPlan, ModulePlan, select_plan
from nowgo.build.bundle import Lambda, create_lambda
from nowgo.build.orchestrator import (
    BuildOrchestrator,
    build,
    parse_args,
    main,
)

__all__ = [
    # Constants
    "CONFIG",
    "MAX_LAMBDA_SIZE",
    "HANDLER_FILENAME",
    "RUNTIME",
    # Data classes
    "BuildConfig",
    "HandlerDescriptor",
    "BuildPlan",
    "LegacyPlan",
    "ModulePlan",
    "Lambda",
    # Functions
    "select_plan",
    "create_lambda",
    # Orchestrator
    "BuildOrchestrator",
    "build",
    "parse_args",
    "main",
]
