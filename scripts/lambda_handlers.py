"""
AWS Lambda entry points for the access logger.

Handlers:
- log_access_handler      POST {appName, meta?} -> stores one access
- daily_report_handler    scheduled/POST -> emails the last 24 hours
- monthly_report_handler  scheduled/POST -> emails the previous month
- contact_handler         POST {name, email, subject, message} -> emails the message

Every handler answers {statusCode, headers, body} with body = {"message": ...}.
"""

import base64
import binascii
import json
import logging
from typing import Any, Dict, Optional

from access_log import (
    AccessLogStore,
    AccessRecord,
    ValidationError,
    configure_logging,
    load_config,
    validate_log_access_body,
    validate_required_strings,
)
from notifications import GiphyClient, build_mailer, send_error_notification
from reporting import DigestRenderer, ReportGenerator

logger = logging.getLogger(__name__)

CONTACT_FIELDS = ("name", "email", "subject", "message")


def response(status_code: int, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """API Gateway proxy response with permissive CORS headers."""
    return {
        "statusCode": status_code,
        "headers": {
            "Content-Type": "application/json",
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Headers": "*",
            "Access-Control-Allow-Methods": "GET,POST",
        },
        "body": json.dumps(body),
    }


def parse_body(event: Dict[str, Any]) -> Any:
    """
    Decode the JSON body of an API Gateway event.

    Raises:
        ValidationError: If the body is not valid JSON
    """
    event = event or {}
    raw = event.get("body") or "{}"
    try:
        if event.get("isBase64Encoded"):
            raw = base64.b64decode(raw).decode("utf-8")
        return json.loads(raw)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValidationError(f"Request body must be valid JSON: {e}") from e


def handle_error(error: Exception, mailer=None, renderer: Optional[DigestRenderer] = None) -> Dict[str, Any]:
    """Log an unexpected error, report it by email when possible and answer 500."""
    logger.error("Unhandled error: %s", error, exc_info=error)
    if mailer is not None:
        send_error_notification(mailer, renderer or DigestRenderer(), error)
    return response(500, {"message": "Internal Server Error"})


def log_access(event: Dict[str, Any], store) -> Dict[str, Any]:
    """Validate a log-access request and store the record."""
    try:
        body = parse_body(event)
    except ValidationError as e:
        return response(400, {"message": e.message})

    result = validate_log_access_body(body)
    if not result.ok:
        return response(400, {"message": result.message})

    record = AccessRecord.create(result.value.app_name, result.value.meta)
    store.put_access_record(record)
    return response(201, {"message": "Access logged"})


def contact(event: Dict[str, Any], mailer, renderer: DigestRenderer) -> Dict[str, Any]:
    """Validate a contact form submission and email it."""
    try:
        body = parse_body(event)
    except ValidationError as e:
        return response(400, {"message": e.message})

    result = validate_required_strings(body, CONTACT_FIELDS)
    if not result.ok:
        return response(400, {"message": result.message})

    fields = result.value
    mailer.send(f"Contact Form: {fields['subject']}", renderer.render_contact(**fields))
    return response(200, {"message": "Message sent"})


def log_access_handler(event, context):
    config = None
    try:
        config = load_config()
        configure_logging(config.log_level)
        config.require("table_name")
        return log_access(event, AccessLogStore(config.table_name))
    except Exception as e:
        return handle_error(e, _error_mailer(config), _renderer(config))


def daily_report_handler(event, context):
    return _report_handler("daily")


def monthly_report_handler(event, context):
    return _report_handler("monthly")


def contact_handler(event, context):
    config = mailer = None
    try:
        config = load_config()
        configure_logging(config.log_level)
        config.require("email_from", "email_to")
        mailer = build_mailer(config)
        return contact(event, mailer, _renderer(config))
    except Exception as e:
        return handle_error(e, mailer or _error_mailer(config), _renderer(config))


def _report_handler(kind: str) -> Dict[str, Any]:
    config = mailer = None
    try:
        config = load_config()
        configure_logging(config.log_level)
        config.require("table_name", "email_from", "email_to")
        mailer = build_mailer(config)
        generator = ReportGenerator(
            config,
            store=AccessLogStore(config.table_name),
            mailer=mailer,
            gif_source=GiphyClient.from_config(config) if config.giphy_api_key else None,
        )
        if kind == "monthly":
            generator.send_monthly_report()
        else:
            generator.send_daily_report()
        return response(200, {"message": "Report sent"})
    except Exception as e:
        return handle_error(e, mailer or _error_mailer(config), _renderer(config))


def _renderer(config) -> DigestRenderer:
    if config is None:
        return DigestRenderer()
    try:
        return DigestRenderer.from_config(config)
    except ValueError:
        return DigestRenderer()


def _error_mailer(config):
    if config is None or not (config.email_from and config.email_to):
        return None
    try:
        return build_mailer(config)
    except Exception:
        logger.exception("Cannot build mailer for error notification")
        return None
