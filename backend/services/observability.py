"""
Observability: JSON logs, per-endpoint API metrics, last-resort error handler

- Every log record (app and services) is emitted as one JSON object
- Each request is timed and counted per endpoint
- Unhandled exceptions are logged with traceback and answered with a
  generic 500 body so internals never reach the client
"""

import time
import logging
import json
import traceback
from flask import request, g, jsonify
from werkzeug.exceptions import HTTPException


class JsonFormatter(logging.Formatter):

    def format(self, record):
        payload = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        payload.update(getattr(record, 'extra_data', {}))
        if record.exc_info and record.exc_info[0]:
            payload['exception'] = traceback.format_exception(*record.exc_info)
        return json.dumps(payload, default=str)


class ApiMetrics:
    """Request, error and latency counters keyed by Flask endpoint."""

    def __init__(self):
        self.endpoints = {}

    def record_request(self, endpoint, latency_ms, is_error=False):
        stats = self.endpoints.setdefault(endpoint, {'requests': 0, 'errors': 0, 'total_ms': 0.0, 'max_ms': 0.0})
        stats['requests'] += 1
        stats['total_ms'] += latency_ms
        stats['max_ms'] = max(stats['max_ms'], latency_ms)
        if is_error:
            stats['errors'] += 1

    def get_summary(self):
        summary = {}
        for endpoint, stats in self.endpoints.items():
            count = stats['requests']
            summary[endpoint] = {
                'requests': count,
                'errors': stats['errors'],
                'avg_latency_ms': round(stats['total_ms'] / count, 2),
                'max_latency_ms': round(stats['max_ms'], 2),
                'error_rate_pct': round(stats['errors'] / count * 100, 1),
            }
        return summary

    def get_totals(self):
        total_requests = sum(s['requests'] for s in self.endpoints.values())
        total_errors = sum(s['errors'] for s in self.endpoints.values())
        return {
            'total_requests': total_requests,
            'total_errors': total_errors,
            'error_rate_pct': round(total_errors / total_requests * 100, 1) if total_requests else 0,
        }

    def reset(self):
        self.endpoints.clear()


metrics = ApiMetrics()


def setup_observability(app):
    """Install JSON logging, request timing, the 500 handler and /metrics."""
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    app.logger.handlers = [handler]
    app.logger.setLevel(logging.INFO)
    # Request lines go to this handler only, not again through root
    app.logger.propagate = False

    # Service loggers propagate to root
    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(logging.INFO)

    @app.before_request
    def start_timer():
        g.start_time = time.time()

    @app.after_request
    def log_request(response):
        latency_ms = (time.time() - g.get('start_time', time.time())) * 1000
        endpoint = request.endpoint or request.path
        metrics.record_request(endpoint, latency_ms, response.status_code >= 400)

        app.logger.info(
            f"{request.method} {request.path} -> {response.status_code} ({latency_ms:.0f}ms)",
            extra={'extra_data': {
                'type': 'request',
                'method': request.method,
                'path': request.path,
                'status': response.status_code,
                'latency_ms': round(latency_ms, 2),
                'ip': request.remote_addr,
            }}
        )
        return response

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({'error': e.description or e.name}), e.code

    @app.errorhandler(Exception)
    def handle_exception(e):
        app.logger.error(
            f"Unhandled exception: {e}",
            exc_info=True,
            extra={'extra_data': {
                'type': 'error',
                'error_class': e.__class__.__name__,
                'path': request.path,
                'method': request.method,
            }}
        )
        return jsonify({'error': 'Internal server error'}), 500

    @app.route('/metrics')
    def metrics_endpoint():
        return jsonify({
            'totals': metrics.get_totals(),
            'per_endpoint': metrics.get_summary(),
        })

    return app
