"""JSON API for creating mailboxes and reading their mail."""

from __future__ import annotations

from flask import Blueprint, Flask, Response, jsonify

from mailtemp.generator import EmailGenerator
from mailtemp.receiver import EmailReceiver

MAX_LISTED_EMAILS = 15
INVALID_ADDRESS_MESSAGE = "无效的邮箱地址"
DELETED_MESSAGE = "临时邮箱已删除"


class APIHandler:
    """Serves the /api routes on top of a generator and a receiver."""

    def __init__(self, generator: EmailGenerator, receiver: EmailReceiver) -> None:
        self.generator = generator
        self.receiver = receiver

    def register(self, app: Flask) -> None:
        """Add the /api routes to app."""
        blueprint = Blueprint("api", __name__, url_prefix="/api")
        blueprint.add_url_rule(
            "/email/new", endpoint="create_email", view_func=self.create_email, methods=["GET"]
        )
        blueprint.add_url_rule(
            "/email/<email>/messages",
            endpoint="get_messages",
            view_func=self.get_messages,
            methods=["GET"],
        )
        blueprint.add_url_rule(
            "/email/list", endpoint="list_emails", view_func=self.list_emails, methods=["GET"]
        )
        blueprint.add_url_rule(
            "/email/<email>",
            endpoint="delete_email",
            view_func=self.delete_email,
            methods=["DELETE"],
        )
        app.register_blueprint(blueprint)

    def create_email(self) -> tuple[Response, int]:
        """Create a new temporary mailbox."""
        address = self.generator.generate_email()
        return jsonify({"status": "success", "email": address}), 200

    def get_messages(self, email: str) -> tuple[Response, int]:
        """Return every message received by an active mailbox."""
        if not self.generator.is_valid_email(email):
            return jsonify({"status": "error", "message": INVALID_ADDRESS_MESSAGE}), 400
        messages = self.receiver.get_emails(email)
        return (
            jsonify(
                {
                    "status": "success",
                    "email": email,
                    "count": len(messages),
                    "messages": [mail.to_dict() for mail in messages],
                }
            ),
            200,
        )

    def list_emails(self) -> tuple[Response, int]:
        """Return at most MAX_LISTED_EMAILS active mailboxes."""
        emails = self.generator.active_emails()[:MAX_LISTED_EMAILS]
        return jsonify({"status": "success", "count": len(emails), "emails": emails}), 200

    def delete_email(self, email: str) -> tuple[Response, int]:
        """Deactivate a mailbox and drop its stored mail."""
        if not self.generator.delete_email(email):
            return jsonify({"status": "error", "message": INVALID_ADDRESS_MESSAGE}), 400
        self.receiver.clear_emails(email)
        return jsonify({"status": "success", "message": DELETED_MESSAGE}), 200