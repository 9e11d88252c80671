"""
Shared plumbing for best-effort lead forwarding.

Forwarding a lead to a CRM-style API is secondary to the quote email:
adapters raise ``LeadForwardingError`` subclasses, and the submission flow
turns those (and any unexpected adapter error) into a ``ForwardingOutcome``
instead of an error response.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class LeadForwardingError(Exception):
    """A lead could not be delivered to an external intake API."""


@dataclass
class ForwardingOutcome:
    """Result of one forwarding attempt as reported to the widget."""

    submitted: bool = False
    data: Optional[Any] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def forward_best_effort(
    name: str,
    send: Callable[[Dict[str, Any]], Any],
    payload: Dict[str, Any],
) -> ForwardingOutcome:
    """
    Run one adapter and capture its outcome without propagating failures.

    Args:
        name: Adapter name for logging
        send: Adapter entry point (e.g. ``GravityFormsService.submit_form``)
        payload: Quote submission payload

    Returns:
        ForwardingOutcome with the response data or the error message
    """
    widget_key = payload.get("widget_key")
    logger.info("%s submission starting (widget_key=%s)", name, widget_key)
    try:
        data = send(payload)
    except LeadForwardingError as e:
        logger.warning(
            "%s submission failed (non-critical): %s (widget_key=%s)",
            name, e, widget_key,
        )
        return ForwardingOutcome(submitted=False, error=str(e))
    except Exception as e:
        logger.exception(
            "%s submission raised unexpectedly (non-critical) (widget_key=%s)",
            name, widget_key,
        )
        return ForwardingOutcome(submitted=False, error=f"{name} submission failed: {e}")

    logger.info("%s submission succeeded (widget_key=%s)", name, widget_key)
    return ForwardingOutcome(submitted=True, data=data)
