"""Height input control."""

from typing import Callable, Literal

from .config import HeightConfig


class HeightControl:
    """Numeric input constrained to a fixed range and step.

    Mirrors a range/number input: every change emits the current value
    to the registered listeners, and out-of-range input is clamped by the
    control itself.
    """

    def __init__(
        self,
        minimum: float = 0.0,
        maximum: float = 10.0,
        step: float = 0.1,
        value: float = 0.0,
        widget: Literal["range", "number"] = "number",
    ):
        if minimum > maximum:
            raise ValueError(f"minimum {minimum} is above maximum {maximum}")
        if step <= 0:
            raise ValueError(f"step must be positive, got {step}")

        self.minimum = minimum
        self.maximum = maximum
        self.step = step
        self.widget = widget
        self.visible = False

        self._listeners: list[Callable[[float], None]] = []
        self.value = self.constrain(value)

    @classmethod
    def from_config(cls, config: HeightConfig) -> "HeightControl":
        return cls(
            minimum=config.minimum,
            maximum=config.maximum,
            step=config.step,
            value=config.initial,
            widget=config.widget,
        )

    def constrain(self, value: float) -> float:
        """Clamp to [minimum, maximum] and snap to the step grid."""
        value = min(max(float(value), self.minimum), self.maximum)
        steps = round((value - self.minimum) / self.step)
        snapped = min(self.minimum + steps * self.step, self.maximum)
        return round(snapped, 10)

    def on_change(self, callback: Callable[[float], None]) -> None:
        self._listeners.append(callback)

    def set_value(self, value: float) -> float:
        """Set the value and notify listeners.

        Returns:
            The value actually stored after clamping and snapping
        """
        self.value = self.constrain(value)
        for callback in self._listeners:
            callback(self.value)
        return self.value

    def show(self) -> None:
        self.visible = True
