from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Literal, Mapping

import json
import logging
import math
import re

from barviz_layout.errors import SettingsError
from barviz_layout.text_metrics import DEFAULT_FONT_FAMILY


LOGGER = logging.getLogger(__name__)

AxisType = Literal["categorical", "continuous"]
RangeMode = Literal["auto", "custom", "shared", "separate"]
LayoutMode = Literal["grid", "flow"]
LabelPosition = Literal["inside_start", "inside_end", "outside_end", "auto"]
AxisPosition = Literal["left", "right"]
LegendPosition = Literal["top", "bottom", "left", "right"]

MIN_CATEGORY_THICKNESS = 20.0
MAX_CATEGORY_THICKNESS = 180.0
MAX_INNER_PADDING = 50.0
MIN_CATEGORY_AXIS_SIZE = 15.0
MAX_CATEGORY_AXIS_SIZE = 50.0
MIN_UNIT_WIDTH = 150.0
MIN_UNIT_HEIGHT = 120.0
BAR_THICKNESS_CEILING = 5.0

_AXIS_TYPES = {"categorical": "categorical", "continuous": "continuous"}
_RANGE_MODES = {
    "auto": "auto",
    "custom": "custom",
    "shared": "shared",
    "common": "shared",
    "sharedacrosscells": "shared",
    "separate": "separate",
    "percellindependent": "separate",
}
_LAYOUT_MODES = {"grid": "grid", "matrix": "grid", "flow": "flow"}
_LABEL_POSITIONS = {
    "insidestart": "inside_start",
    "insidebase": "inside_start",
    "insideend": "inside_end",
    "insidecenter": "inside_end",
    "outsideend": "outside_end",
    "auto": "auto",
}
_AXIS_POSITIONS = {"left": "left", "right": "right"}
_LEGEND_POSITIONS = {
    "top": "top",
    "topcenter": "top",
    "bottom": "bottom",
    "bottomcenter": "bottom",
    "left": "left",
    "leftcenter": "left",
    "right": "right",
    "rightcenter": "right",
}

_CHOICES: dict[str, dict[str, str]] = {
    "axis_type": _AXIS_TYPES,
    "range_mode": _RANGE_MODES,
    "range_mode_no_scalar": _RANGE_MODES,
    "layout_mode": _LAYOUT_MODES,
    "label_position": _LABEL_POSITIONS,
    "label_position_for_filled_legend": _LABEL_POSITIONS,
    "position": _AXIS_POSITIONS,
}
_LEGEND_CHOICES: dict[str, dict[str, str]] = {"position": _LEGEND_POSITIONS}

_KEY_ALIASES = {
    "range_type": "range_mode",
    "range_type_no_scalar": "range_mode_no_scalar",
    "min_category_width": "min_category_thickness",
    "max_category_width": "max_category_thickness",
    "min_unit_width": "min_cell_width",
    "min_unit_height": "min_cell_height",
    "max_row_width": "max_columns",
}

_OPTIONAL_FLOATS = {"start", "end"}
_OPTIONAL_INTS = {"precision"}


@dataclass(frozen=True)
class CategoryAxisSettings:
    show: bool = True
    position: AxisPosition = "left"
    axis_type: AxisType = "continuous"
    range_mode: RangeMode = "auto"
    range_mode_no_scalar: RangeMode = "auto"
    start: float | None = None
    end: float | None = None
    min_category_thickness: float = MIN_CATEGORY_THICKNESS
    max_category_thickness: float = MAX_CATEGORY_THICKNESS
    inner_padding: float = 20.0
    maximum_size: float = 25.0
    font_family: str = DEFAULT_FONT_FAMILY
    font_size: float = 11.0
    show_title: bool = True
    title_font_size: float = 11.0

    def normalized(self) -> "CategoryAxisSettings":
        min_thickness = _clamp_logged(
            "category_axis.min_category_thickness",
            self.min_category_thickness,
            MIN_CATEGORY_THICKNESS,
            MAX_CATEGORY_THICKNESS,
        )
        max_thickness = _clamp_logged(
            "category_axis.max_category_thickness",
            self.max_category_thickness,
            min_thickness,
            MAX_CATEGORY_THICKNESS,
        )
        return replace(
            self,
            inner_padding=_clamp_logged("category_axis.inner_padding", self.inner_padding, 0.0, MAX_INNER_PADDING),
            min_category_thickness=min_thickness,
            max_category_thickness=max_thickness,
            maximum_size=_clamp_logged(
                "category_axis.maximum_size",
                self.maximum_size,
                MIN_CATEGORY_AXIS_SIZE,
                MAX_CATEGORY_AXIS_SIZE,
            ),
        )


@dataclass(frozen=True)
class ValueAxisSettings:
    show: bool = True
    range_mode: RangeMode = "auto"
    start: float | None = None
    end: float | None = None
    font_family: str = DEFAULT_FONT_FAMILY
    font_size: float = 11.0
    show_title: bool = True
    title_font_size: float = 11.0

    def normalized(self) -> "ValueAxisSettings":
        return self


@dataclass(frozen=True)
class LabelSettings:
    show: bool = True
    overflow_text: bool = False
    label_position: LabelPosition = "auto"
    label_position_for_filled_legend: LabelPosition = "auto"
    display_units: float = 0.0
    precision: int | None = None
    font_family: str = DEFAULT_FONT_FAMILY
    font_size: float = 9.0
    show_background: bool = False

    def normalized(self) -> "LabelSettings":
        if self.precision is not None and self.precision < 0:
            LOGGER.warning("labels.precision %s is negative; using 0", self.precision)
            return replace(self, precision=0)
        return self


@dataclass(frozen=True)
class SmallMultipleSettings:
    layout_mode: LayoutMode = "grid"
    max_columns: int = 4
    min_cell_width: float = MIN_UNIT_WIDTH
    min_cell_height: float = MIN_UNIT_HEIGHT
    show_chart_title: bool = True
    show_separators: bool = True
    font_family: str = DEFAULT_FONT_FAMILY
    font_size: float = 12.0

    def normalized(self) -> "SmallMultipleSettings":
        return replace(
            self,
            max_columns=max(1, int(self.max_columns)),
            min_cell_width=_clamp_logged("small_multiple.min_cell_width", self.min_cell_width, MIN_UNIT_WIDTH, math.inf),
            min_cell_height=_clamp_logged(
                "small_multiple.min_cell_height", self.min_cell_height, MIN_UNIT_HEIGHT, math.inf
            ),
        )


@dataclass(frozen=True)
class LegendSettings:
    show: bool = True
    position: LegendPosition = "top"

    def normalized(self) -> "LegendSettings":
        return self


@dataclass(frozen=True)
class ScrollSettings:
    track_size: float = 10.0
    track_margin: float = 2.0

    @property
    def thickness(self) -> float:
        return self.track_size + self.track_margin

    def normalized(self) -> "ScrollSettings":
        return replace(self, track_size=max(0.0, self.track_size), track_margin=max(0.0, self.track_margin))


@dataclass(frozen=True)
class Settings:
    """Immutable configuration for one layout update."""

    category_axis: CategoryAxisSettings = field(default_factory=CategoryAxisSettings)
    value_axis: ValueAxisSettings = field(default_factory=ValueAxisSettings)
    labels: LabelSettings = field(default_factory=LabelSettings)
    small_multiple: SmallMultipleSettings = field(default_factory=SmallMultipleSettings)
    legend: LegendSettings = field(default_factory=LegendSettings)
    scroll: ScrollSettings = field(default_factory=ScrollSettings)
    selection: Any = ()

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "Settings":
        """Build settings from a host-supplied mapping.

        Keys may be camelCase or snake_case. Absent sections and fields keep their
        defaults; out-of-range numbers are clamped. A persisted selection delivered
        as a JSON string is decoded but otherwise left opaque.
        """
        raw = raw or {}
        if not isinstance(raw, Mapping):
            raise SettingsError(f"settings must be a mapping, got {type(raw)!r}")
        sections = {_snake(str(key)): value for key, value in raw.items()}
        selection_raw = sections.get("selection_save_settings", sections.get("selection", ()))
        if isinstance(selection_raw, Mapping):
            selection_raw = selection_raw.get("selection", ())
        return cls(
            category_axis=_build_section(CategoryAxisSettings, sections.get("category_axis")),
            value_axis=_build_section(ValueAxisSettings, sections.get("value_axis")),
            labels=_build_section(LabelSettings, sections.get("category_labels", sections.get("labels"))),
            small_multiple=_build_section(SmallMultipleSettings, sections.get("small_multiple")),
            legend=_build_section(LegendSettings, sections.get("legend")),
            scroll=_build_section(ScrollSettings, sections.get("scrollbar", sections.get("scroll"))),
            selection=_decode_selection(selection_raw),
        )

    def normalized(self) -> "Settings":
        return replace(
            self,
            category_axis=self.category_axis.normalized(),
            value_axis=self.value_axis.normalized(),
            labels=self.labels.normalized(),
            small_multiple=self.small_multiple.normalized(),
            legend=self.legend.normalized(),
            scroll=self.scroll.normalized(),
        )

    def resolved(self, *, legend_present: bool, small_multiple: bool, category_is_scalar: bool) -> "Settings":
        """Apply the mode-dependent overrides that hold for a single update."""
        labels = self.labels
        if legend_present:
            position = labels.label_position_for_filled_legend
            if position == "outside_end":
                position = "auto"
            labels = replace(labels, label_position=position, label_position_for_filled_legend=position)

        category_axis = self.category_axis
        if small_multiple and (not category_is_scalar or category_axis.axis_type == "categorical"):
            category_axis = replace(category_axis, range_mode=category_axis.range_mode_no_scalar)
        return replace(self, labels=labels, category_axis=category_axis)


def _snake(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def _build_section(cls: type, raw: Any) -> Any:
    if raw is None:
        return cls().normalized()
    if isinstance(raw, cls):
        return raw.normalized()
    if not isinstance(raw, Mapping):
        raise SettingsError(f"{cls.__name__} section must be a mapping, got {type(raw)!r}")

    defaults = cls()
    known = {f.name for f in fields(cls)}
    kwargs: dict[str, Any] = {}
    for raw_key, value in raw.items():
        name = _snake(str(raw_key))
        name = _KEY_ALIASES.get(name, name)
        if name not in known:
            LOGGER.debug("ignoring unknown %s field %r", cls.__name__, raw_key)
            continue
        kwargs[name] = _coerce_field(cls.__name__, name, value, getattr(defaults, name))
    return cls(**kwargs).normalized()


def _coerce_field(section: str, name: str, value: Any, default: Any) -> Any:
    if value is None:
        return default if name not in _OPTIONAL_FLOATS | _OPTIONAL_INTS else None
    choices = _LEGEND_CHOICES if section == LegendSettings.__name__ else _CHOICES
    if name in choices:
        key = re.sub(r"[\s_\-]", "", str(value)).lower()
        choice = choices[name].get(key)
        if choice is None:
            raise SettingsError(f"{section}.{name}: unsupported value {value!r}")
        return choice
    try:
        if name in _OPTIONAL_INTS:
            return int(value)
        if name in _OPTIONAL_FLOATS:
            return _finite_float(value)
        if isinstance(default, bool):
            return _coerce_bool(value)
        if isinstance(default, int):
            return int(value)
        if isinstance(default, float):
            return _finite_float(value)
    except (TypeError, ValueError) as exc:
        raise SettingsError(f"{section}.{name}: expected a number, got {value!r}") from exc
    return str(value)


def _finite_float(value: Any) -> float:
    out = float(value)
    if not math.isfinite(out):
        raise ValueError("value must be finite")
    return out


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes", "on"}:
            return True
        if lowered in {"false", "0", "no", "off", ""}:
            return False
        raise ValueError(f"not a boolean: {value!r}")
    return bool(value)


def _decode_selection(raw: Any) -> Any:
    if isinstance(raw, str):
        if not raw.strip():
            return ()
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise SettingsError("persisted selection is not valid JSON") from exc
    return raw


def _clamp_logged(name: str, value: float, lo: float, hi: float) -> float:
    out = float(max(lo, min(hi, value)))
    if out != value:
        LOGGER.warning("%s=%s out of range [%s, %s]; using %s", name, value, lo, hi, out)
    return out
