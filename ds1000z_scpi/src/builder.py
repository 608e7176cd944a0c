"""
Turns (operation, parameters, context) into a fully rendered TransitionPlan.

Nothing here talks to an instrument: a plan is either built completely or
a ValidationError is raised, so a bad parameter can never leave the scope
half-configured.
"""

from dataclasses import dataclass, field
from string import Formatter
from typing import Any, Optional, Tuple

from .catalog import (
    COMMAND_DELAY,
    DEFAULT_CATALOG,
    EMPTY_CONTEXT,
    InstrumentContext,
    MODE_CHANGE_DELAY,
    SETTLE_DELAY,
    MathMode,
    Operation,
    filter_frequency_range,
)
from .errors import InvalidTimebase, UnknownFilterType, ValidationError

_FORMATTER = Formatter()

# Operator written when entering each mode
MODE_OPERATORS = {
    MathMode.BASIC_OPERATIONS: "ADD",
    MathMode.FFT_ANALYSIS: "FFT",
    MathMode.DIGITAL_FILTERS: "FILTer",
    MathMode.ADVANCED_MATH: "INTG",
}

# Operation that configures each mode once it is active
MODE_OPERATIONS = {
    MathMode.BASIC_OPERATIONS: Operation.APPLY_BASIC_OPERATION,
    MathMode.FFT_ANALYSIS: Operation.APPLY_FFT,
    MathMode.DIGITAL_FILTERS: Operation.SET_DIGITAL_FILTER,
    MathMode.ADVANCED_MATH: Operation.SET_ADVANCED_MATH,
}

MODE_DEFAULTS = {
    MathMode.BASIC_OPERATIONS: {"source1": "CHANnel1", "source2": "CHANnel2", "operator": "ADD"},
    MathMode.FFT_ANALYSIS: {"source": "CHANnel1", "window": "HANNing", "split": "FULL", "unit": "VRMS"},
    MathMode.DIGITAL_FILTERS: {"filter_type": "LPASs", "w1": 1000, "w2": 10000},
    MathMode.ADVANCED_MATH: {"function": "INTG", "start": 0, "end": 100},
}

_DISPLAY_ON = ":MATH:DISPlay ON"
_DISPLAY_OFF = ":MATH:DISPlay OFF"
_MATH_RESET = ":MATH:RESet"


@dataclass(frozen=True)
class PlanStep:
    """One command and how long to wait after sending it (seconds)."""

    command: str
    delay: float = 0.0

    def __post_init__(self):
        if self.delay < 0:
            raise ValueError(f"delay must be >= 0, got {self.delay}")


@dataclass(frozen=True)
class TransitionPlan:
    """
    Ordered, validated commands for one operation invocation.

    Attributes:
        operation: Operation the plan implements
        steps: Tuple of PlanStep in transmission order
        parameters: Normalized parameters as (name, value) pairs
    """

    operation: Operation
    steps: Tuple[PlanStep, ...] = ()
    parameters: Tuple[Tuple[str, Any], ...] = field(default=())

    def __len__(self):
        return len(self.steps)

    def __iter__(self):
        return iter(self.steps)

    @property
    def commands(self):
        return [step.command for step in self.steps]

    @property
    def delays(self):
        return [step.delay for step in self.steps]

    @property
    def total_delay(self):
        return sum(self.delays)

    @property
    def params(self):
        return dict(self.parameters)

    def describe(self):
        """Multi-line, human-readable listing of the plan."""
        lines = [f"{self.operation} ({len(self.steps)} command(s))"]
        for index, step in enumerate(self.steps):
            wait = f"  +{step.delay * 1000:.0f} ms" if step.delay else ""
            lines.append(f"  {index:02d}: {step.command}{wait}")
        return "\n".join(lines)


def _template_fields(template):
    return [name for _, name, _, _ in _FORMATTER.parse(template) if name]


def _fit_filter_defaults(defaults, overrides, timebase):
    """Clamp the default cutoffs the caller did not set into the range allowed at this timebase."""
    filter_type = overrides.get("filter_type", defaults["filter_type"])
    try:
        limits = filter_frequency_range(timebase, filter_type)
    except (InvalidTimebase, UnknownFilterType):
        return {}
    fitted = {}
    if overrides.get("w1") is None:
        fitted["w1"] = min(max(defaults["w1"], limits.minimum), limits.maximum)
    if overrides.get("w2") is None:
        fitted["w2"] = min(max(defaults["w2"], limits.w2_minimum), limits.w2_maximum)
    return fitted


class CommandBuilder:
    """
    Validates parameters against a Catalog and renders command plans.

    Args:
        catalog: Catalog to build from (defaults to the 4-channel DS1000Z table)
    """

    def __init__(self, catalog=None):
        self.catalog = catalog or DEFAULT_CATALOG

    def validate(self, operation, values: Optional[dict] = None, context: Optional[InstrumentContext] = None):
        """
        Normalize and check every parameter of an operation.

        Returns:
            (OperationSpec, dict of normalized values)

        Raises:
            UnknownOperation: If the operation is not in the catalog
            ValidationError: On the first missing, unknown or invalid parameter
        """
        spec = self.catalog.get_spec(operation)
        context = context or EMPTY_CONTEXT
        values = dict(values or {})

        for name in values:
            if spec.param(name) is None:
                raise ValidationError(
                    spec.operation, name, f"unknown parameter, expected one of {list(spec.param_names)}"
                )

        normalized = {}
        for param in spec.params:
            raw = values.get(param.name)
            if raw is None:
                if param.default is not None:
                    raw = param.default
                elif param.optional:
                    normalized[param.name] = None
                    continue
                else:
                    raise ValidationError(spec.operation, param.name, "required parameter missing")
            try:
                normalized[param.name] = param.normalize(raw, context, normalized)
            except ValidationError as exc:
                exc.operation = str(spec.operation)
                raise
            except ValueError as exc:
                raise ValidationError(spec.operation, param.name, str(exc)) from exc

        for cross_check in spec.cross_checks:
            problem = cross_check(normalized)
            if problem:
                parameter, reason = problem
                raise ValidationError(spec.operation, parameter, reason)

        return spec, normalized

    def build(
        self, operation, values: Optional[dict] = None, context: Optional[InstrumentContext] = None
    ) -> TransitionPlan:
        """
        Build the plan for one operation.

        Args:
            operation: Operation or its name (e.g. 'SetVerticalScale')
            values: Dict of parameter values
            context: Optional InstrumentContext for state-dependent limits

        Returns:
            TransitionPlan

        Raises:
            UnknownOperation, ValidationError
        """
        spec, normalized = self.validate(operation, values, context)
        if spec.composite:
            return self.build_mode_switch(
                normalized["current"], normalized["target"], reset=normalized["reset"], context=context
            )

        commands = []
        for template in spec.templates:
            names = _template_fields(template)
            if any(normalized.get(name) is None for name in names):
                continue
            rendered = {name: spec.param(name).render(normalized[name]) for name in names}
            commands.append(template.format(**rendered))

        steps = tuple(
            PlanStep(command, spec.step_delay if index < len(commands) - 1 else 0.0)
            for index, command in enumerate(commands)
        )
        return TransitionPlan(spec.operation, steps, tuple(normalized.items()))

    def build_mode_switch(
        self,
        current,
        target,
        values: Optional[dict] = None,
        reset: bool = False,
        context: Optional[InstrumentContext] = None,
    ) -> TransitionPlan:
        """
        Build the composite plan that moves MATH from one mode to another.

        Sequence: display off (150 ms) [, reset (150 ms)], operator (500 ms),
        display on (50 ms), then the target mode's configuration commands,
        50 ms apart.

        Args:
            current: MathMode (or name) active now
            target: MathMode (or name) to switch to
            values: Optional overrides for the target mode's configuration
            reset: Also send :MATH:RESet after turning the display off
            context: Optional InstrumentContext

        Returns:
            TransitionPlan (empty when current == target)
        """
        switch_spec, switch = self.validate(
            Operation.SWITCH_MATH_MODE, {"current": current, "target": target, "reset": reset}
        )
        current_mode = MathMode(switch["current"])
        target_mode = MathMode(switch["target"])
        parameters = tuple(switch.items())
        if current_mode is target_mode:
            return TransitionPlan(switch_spec.operation, (), parameters)

        config_values = dict(MODE_DEFAULTS[target_mode])
        if target_mode is MathMode.DIGITAL_FILTERS and context is not None and context.timebase is not None:
            config_values.update(_fit_filter_defaults(config_values, values or {}, context.timebase))
        config_values.update(values or {})
        try:
            config = self.build(MODE_OPERATIONS[target_mode], config_values, context)
        except ValidationError as exc:
            exc.operation = str(switch_spec.operation)
            raise

        operator = MODE_OPERATORS[target_mode]
        if target_mode is MathMode.ADVANCED_MATH:
            operator = config.params["function"]

        steps = [PlanStep(_DISPLAY_OFF, SETTLE_DELAY)]
        if switch["reset"]:
            steps.append(PlanStep(_MATH_RESET, SETTLE_DELAY))
        steps.append(PlanStep(f":MATH:OPERator {operator}", MODE_CHANGE_DELAY))
        steps.append(PlanStep(_DISPLAY_ON, COMMAND_DELAY))
        steps.extend(
            PlanStep(command, COMMAND_DELAY) for command in config.commands if command != _DISPLAY_ON
        )
        return TransitionPlan(switch_spec.operation, tuple(steps), parameters + config.parameters)
