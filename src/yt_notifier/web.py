"""Flask routes: hub callback and management API"""
import logging
from functools import wraps

from flask import Flask, jsonify, request
from pydantic import BaseModel, Field, ValidationError
from werkzeug.exceptions import HTTPException

from .errors import InvalidSignature, SubscriptionError

logger = logging.getLogger(__name__)


class ChannelRequest(BaseModel):
    """Body of /api/subscribe and /api/unsubscribe"""
    channelId: str = Field(min_length=1)


class NotifierWebServer:
    """Flask-based web server for hub callbacks and subscription management"""

    def __init__(self, application, host: str = "0.0.0.0", port: int = 8080):
        self.application = application
        self.host = host
        self.port = port

        self.app = Flask(__name__)

        self._setup_routes()
        self._setup_error_handlers()

    def _setup_routes(self):
        app = self.app
        notifier = self.application

        def require_auth(f):
            """Decorator to require the API bearer token"""
            @wraps(f)
            def decorated_function(*args, **kwargs):
                if request.headers.get("Authorization") != f"Bearer {notifier.config.api_secret}":
                    return jsonify({"error": "Unauthorized"}), 401
                return f(*args, **kwargs)
            return decorated_function

        def channel_id_from_body():
            return ChannelRequest.model_validate(request.get_json(silent=True)).channelId

        @app.route("/")
        def index():
            return jsonify({"message": "YouTube Notifier is running!"})

        @app.route("/api/subscriptions")
        @require_auth
        def list_subscriptions():
            return jsonify([s.to_dict() for s in notifier.registry.list_all()])

        @app.route("/api/subscribe", methods=["POST"])
        @require_auth
        def subscribe():
            notifier.registry.add(channel_id_from_body())
            return jsonify({"message": "Subscribed!"})

        @app.route("/api/unsubscribe", methods=["POST"])
        @require_auth
        def unsubscribe():
            notifier.registry.remove(channel_id_from_body())
            return jsonify({"message": "Unsubscribed!"})

        @app.route("/api/force-renew", methods=["POST"])
        @require_auth
        def force_renew():
            report = notifier.renew_all()
            return jsonify({
                "message": "Forced Renewal Done!",
                "renewed": len(report.renewed),
                "failed": report.failed,
            })

        @app.route("/callback", methods=["GET"])
        def verify_intent():
            # Hub handshake: echo the challenge verbatim
            challenge = request.args.get("hub.challenge")
            if challenge is None:
                return "Missing hub.challenge", 400, {"Content-Type": "text/plain"}
            logger.info(f"🤝 Hub verification: {request.args.get('hub.mode', '?')} {request.args.get('hub.topic', '')}")
            return challenge, 200, {"Content-Type": "text/plain"}

        @app.route("/callback", methods=["POST"])
        def push_notification():
            notifier.handle_push(request.get_data(), request.headers.get("X-Hub-Signature"))
            return "OK", 200, {"Content-Type": "text/plain"}

    def _setup_error_handlers(self):
        app = self.app
        notifier = self.application

        @app.errorhandler(ValidationError)
        def invalid_body(e):
            return jsonify({"error": "Invalid request body: channelId (string) is required"}), 400

        @app.errorhandler(SubscriptionError)
        def subscription_failed(e):
            logger.warning(f"⚠️ {e}")
            return jsonify({"error": str(e)}), 502

        @app.errorhandler(InvalidSignature)
        def invalid_signature(e):
            logger.warning(f"🚫 Rejected push notification: {e}")
            return f"Error: {e}", 403, {"Content-Type": "text/plain"}

        @app.errorhandler(Exception)
        def unhandled(e):
            # 404/405 and friends keep their own response
            if isinstance(e, HTTPException):
                return e
            notifier.report_error(e)
            return jsonify({"message": "Something went wrong"}), 500

    def serve(self):
        """Run the web server in the current thread (blocking)"""
        logger.info(f"🌐 Listening on http://{self.host}:{self.port}")
        self.app.run(host=self.host, port=self.port, threaded=True, use_reloader=False)
