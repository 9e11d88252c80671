"""
Widget configuration derivation.

Turns a widget's stored modules, explicit steps and pricing rules into the
self-describing configuration document consumed by the front-end renderer:

    {
        "widget_id": <public widget key>,
        "steps_data": {step_key: step, ...},
        "step_order": [step_key, ...],
        "branding": {...},
        "pricing": {category: rules, ...},
        "estimation_settings": {...six fixed keys...},
    }

Per-module behaviour (prompt type, buttons, layout, required-ness and the
estimation shape of options) is data, kept in the lookup tables below.
"""

import copy
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

from ..models.widget import Widget, WidgetStatus
from .field_normalizer import coerce_bool, coerce_float, coerce_int

logger = logging.getLogger(__name__)


class WidgetNotFoundError(Exception):
    """Unknown widget key, or a widget that is not published."""


# =============================================================================
# Module Lookup Tables
# =============================================================================

PROMPT_TYPES = {
    "service-selection": "avatar",
    "date-selection": "calendar",
    "origin-location": "address",
    "target-location": "address",
    "distance-calculation": "calculation",
    "chat-integration": "chat",
}
DEFAULT_PROMPT_TYPE = "text"

MODULE_BUTTONS = {
    "supply-inquiry": {
        "primary": {"text": "Continue", "action": "auto"},
    },
    "contact-info": {
        "primary": {"text": "Get Quote", "action": "submit"},
    },
    "review-quote": {
        "primary": {"text": "Confirm", "action": "submit"},
        "secondary": {"text": "Back", "action": "back"},
    },
}
DEFAULT_BUTTONS = {"primary": {"text": "Continue", "action": "next"}}

MODULE_LAYOUTS = {
    "date-selection": {"type": "calendar", "centered": True},
    "origin-location": {"type": "form", "centered": False},
    "target-location": {"type": "form", "centered": False},
    "origin-challenges": {"type": "challenges", "centered": False},
    "target-challenges": {"type": "challenges", "centered": False},
    "distance-calculation": {"type": "route-calculation", "centered": True},
    "supply-selection": {"type": "catalog", "columns": 2},
    "additional-services": {"type": "list", "selectable": "multiple"},
}
DEFAULT_LAYOUT = {"type": "grid", "columns": 1, "centered": True}

REQUIRED_MODULES = frozenset({"service-selection", "contact-info", "review-quote"})

DISTANCE_MODULE = "distance-calculation"
DEFAULT_COST_PER_MILE = 4.00
DEFAULT_MINIMUM_DISTANCE = 0


# =============================================================================
# Estimation Builders
# =============================================================================

def _project_scope_estimation(option: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "base_price": coerce_float(option.get("base_price"), 0),
        "estimated_hours": coerce_float(option.get("estimated_hours"), 0),
        "price_range_min": coerce_float(option.get("price_range_min"), 0),
        "price_range_max": coerce_float(option.get("price_range_max"), 0),
    }


def _multiplier_estimation(option: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    # Only options that define a multiplier get one
    if option.get("price_multiplier") is None:
        return None
    return {"price_multiplier": coerce_float(option.get("price_multiplier"))}


def _challenge_estimation(option: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "pricing_type": option.get("pricing_type") if option.get("pricing_type") is not None else "fixed",
        "pricing_value": coerce_float(option.get("pricing_value"), 0),
        "max_units": coerce_int(option.get("max_units"), 1),
    }


def _additional_service_estimation(option: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "pricing_type": option.get("pricing_type") if option.get("pricing_type") is not None else "fixed",
        "pricing_value": coerce_float(option.get("pricing_value"), 0),
    }


ESTIMATION_BUILDERS = {
    "project-scope": _project_scope_estimation,
    "service-type": _multiplier_estimation,
    "location-type": _multiplier_estimation,
    "time-selection": _multiplier_estimation,
    "origin-challenges": _challenge_estimation,
    "target-challenges": _challenge_estimation,
    "additional-services": _additional_service_estimation,
}


# =============================================================================
# Input Coercion
# =============================================================================

def _as_dict(value: Any, label: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, dict):
        return value
    logger.warning("Expected an object for %s, got %s; using {}", label, type(value).__name__)
    return {}


def _as_list(value: Any, label: str) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    logger.warning("Expected an array for %s, got %s; using []", label, type(value).__name__)
    return []


def humanize_module_key(module_key: str) -> str:
    """``"origin-challenges"`` -> ``"Origin Challenges"``."""
    return " ".join(word[:1].upper() + word[1:] for word in module_key.replace("-", " ").split(" "))


# =============================================================================
# Module Option Formatter
# =============================================================================

def format_module_options(module_key: str, module_config: Any) -> List[Dict[str, Any]]:
    """
    Normalize a module's raw option list for the renderer.

    Each option gets a positional id (``{module_key}_option_{index}``) and,
    depending on the module, an ``estimation`` sub-object. The
    distance-calculation module always gets a synthetic
    ``distance_settings`` option carrying the per-mile pricing.

    Args:
        module_key: Module key (exact, case-sensitive)
        module_config: Raw module configuration

    Returns:
        List of formatted option dicts
    """
    config = _as_dict(module_config, f"module_configs[{module_key!r}]")
    raw_options = _as_list(config.get("options"), f"module_configs[{module_key!r}].options")
    build_estimation = ESTIMATION_BUILDERS.get(module_key)

    options = []
    for index, raw_option in enumerate(raw_options):
        option = raw_option if isinstance(raw_option, dict) else {}
        title = option.get("title")
        description = option.get("description")
        formatted = {
            "id": f"{module_key}_option_{index}",
            "value": title if title is not None else "",
            "title": title if title is not None else "",
            "description": description if description is not None else "",
            "icon": option.get("icon"),
            "type": "service",
        }
        if build_estimation is not None:
            estimation = build_estimation(option)
            if estimation is not None:
                formatted["estimation"] = estimation
        options.append(formatted)

    if module_key == DISTANCE_MODULE:
        options.append({
            "id": "distance_settings",
            "type": "distance_calculation",
            "estimation": {
                "cost_per_mile": coerce_float(config.get("cost_per_mile"), DEFAULT_COST_PER_MILE),
                "minimum_distance": coerce_float(config.get("minimum_distance"), DEFAULT_MINIMUM_DISTANCE),
            },
        })

    return options


# =============================================================================
# Step Synthesizer
# =============================================================================

def get_prompt_type(module_key: str) -> str:
    return PROMPT_TYPES.get(module_key, DEFAULT_PROMPT_TYPE)


def get_module_buttons(module_key: str) -> Dict[str, Any]:
    return copy.deepcopy(MODULE_BUTTONS.get(module_key, DEFAULT_BUTTONS))


def get_module_layout(module_key: str) -> Dict[str, Any]:
    return copy.deepcopy(MODULE_LAYOUTS.get(module_key, DEFAULT_LAYOUT))


def is_module_required(module_key: str) -> bool:
    return module_key in REQUIRED_MODULES


def synthesize_step(module_key: str, module_config: Any) -> Dict[str, Any]:
    """Build one renderer-ready step from a module's configuration."""
    config = _as_dict(module_config, f"module_configs[{module_key!r}]")
    title = config.get("title")
    if title is None:
        title = humanize_module_key(module_key)

    return {
        "id": module_key,
        "title": title,
        "subtitle": config.get("subtitle"),
        "prompt": {
            "message": title,
            "type": get_prompt_type(module_key),
        },
        "options": format_module_options(module_key, config),
        "buttons": get_module_buttons(module_key),
        "layout": get_module_layout(module_key),
        "validation": {
            "required": is_module_required(module_key),
            "field": module_key,
        },
    }


def synthesize_steps(
    enabled_modules: Any,
    module_configs: Any,
) -> Tuple[Dict[str, Dict[str, Any]], List[str]]:
    """
    Synthesize steps for every enabled module that has a configuration.

    Enabled modules without a configuration entry are skipped.

    Returns:
        (steps_data keyed by module key, step_order)
    """
    modules = _as_list(enabled_modules, "enabled_modules")
    configs = _as_dict(module_configs, "module_configs")

    steps_data: Dict[str, Dict[str, Any]] = {}
    step_order: List[str] = []
    for module_key in modules:
        if not isinstance(module_key, str) or module_key not in configs:
            logger.debug("Skipping enabled module %r with no configuration", module_key)
            continue
        steps_data[module_key] = synthesize_step(module_key, configs[module_key])
        step_order.append(module_key)

    return steps_data, step_order


# =============================================================================
# Configuration Assembler
# =============================================================================

def build_explicit_steps(
    steps: Iterable[Mapping[str, Any]],
) -> Tuple[Dict[str, Dict[str, Any]], List[str]]:
    """
    Use stored steps verbatim, ordered by ``order_index`` (stable on ties).

    Returns:
        (steps_data keyed by step key, step_order)
    """
    ordered = sorted(steps, key=lambda step: coerce_int(step.get("order_index"), 0))

    steps_data: Dict[str, Dict[str, Any]] = {}
    step_order: List[str] = []
    for step in ordered:
        step_key = step.get("step_key")
        steps_data[step_key] = {
            "id": step_key,
            "title": step.get("title"),
            "subtitle": step.get("subtitle"),
            "prompt": step.get("prompt"),
            "options": step.get("options"),
            "buttons": step.get("buttons"),
            "layout": step.get("layout"),
            "validation": step.get("validation"),
        }
        step_order.append(step_key)

    return steps_data, step_order


def build_pricing(pricing_rules: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """Map category -> rules object (last row wins on duplicate categories)."""
    pricing: Dict[str, Any] = {}
    for rule in pricing_rules:
        pricing[rule.get("category")] = rule.get("pricing_rules")
    return pricing


def build_estimation_settings(settings: Any) -> Dict[str, Any]:
    """Merge widget settings over typed defaults; always exactly six keys."""
    values = _as_dict(settings, "settings")
    return {
        "tax_rate": coerce_float(values.get("tax_rate"), 0.08),
        "service_area_miles": coerce_int(values.get("service_area_miles"), 100),
        "minimum_job_price": coerce_float(values.get("minimum_job_price"), 0.0),
        "show_price_ranges": coerce_bool(values.get("show_price_ranges"), True),
        "currency": "USD",
        "currency_symbol": "$",
    }


def assemble_configuration(
    widget: Mapping[str, Any],
    steps: Optional[List[Mapping[str, Any]]] = None,
    pricing_rules: Optional[List[Mapping[str, Any]]] = None,
) -> Dict[str, Any]:
    """
    Assemble the public configuration document for a widget.

    Explicit steps, when there is at least one, replace module synthesis
    entirely; the two are never merged.

    Args:
        widget: Widget record (widget_key, enabled_modules, module_configs,
            branding, settings)
        steps: Stored step records (may be empty)
        pricing_rules: Pricing records ({category, pricing_rules})

    Returns:
        Configuration document
    """
    steps = list(steps or [])
    widget_key = widget.get("widget_key")

    if steps:
        steps_data, step_order = build_explicit_steps(steps)
        source = "explicit"
    else:
        steps_data, step_order = synthesize_steps(
            widget.get("enabled_modules"),
            widget.get("module_configs"),
        )
        source = "synthesized"

    logger.info(
        "Assembled widget configuration: widget_key=%s source=%s steps=%d",
        widget_key, source, len(step_order),
    )

    return {
        "widget_id": widget_key,
        "steps_data": steps_data,
        "step_order": step_order,
        "branding": _as_dict(widget.get("branding"), "branding"),
        "pricing": build_pricing(pricing_rules or []),
        "estimation_settings": build_estimation_settings(widget.get("settings")),
    }


def widget_to_record(widget: Widget) -> Dict[str, Any]:
    return {
        "widget_key": widget.widget_key,
        "status": widget.status.value if widget.status else None,
        "enabled_modules": widget.enabled_modules,
        "module_configs": widget.module_configs,
        "branding": widget.branding,
        "settings": widget.settings,
    }


def step_to_record(step) -> Dict[str, Any]:
    return {
        "step_key": step.step_key,
        "title": step.title,
        "subtitle": step.subtitle,
        "prompt": step.prompt,
        "options": step.options,
        "buttons": step.buttons,
        "layout": step.layout,
        "validation": step.validation,
        "order_index": step.order_index,
    }


def build_configuration(widget: Widget) -> Dict[str, Any]:
    """Assemble the configuration document for an ORM widget."""
    return assemble_configuration(
        widget_to_record(widget),
        [step_to_record(step) for step in widget.steps],
        [{"category": rule.category, "pricing_rules": rule.pricing_rules} for rule in widget.pricing],
    )


def get_published_configuration(db: Session, widget_key: str) -> Dict[str, Any]:
    """
    Load a published widget by public key and assemble its configuration.

    Raises:
        WidgetNotFoundError: If the key is unknown or the widget is not published
    """
    widget = (
        db.query(Widget)
        .options(selectinload(Widget.steps), selectinload(Widget.pricing))
        .filter(Widget.widget_key == widget_key, Widget.status == WidgetStatus.PUBLISHED)
        .first()
    )
    if widget is None:
        logger.info("Configuration requested for unavailable widget key")
        raise WidgetNotFoundError(widget_key)
    return build_configuration(widget)
