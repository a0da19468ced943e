"""The HTML front page and its static files."""

from __future__ import annotations

from pathlib import Path

from flask import Blueprint, Flask, render_template

HOME_TEMPLATE = "index.html"
HOME_TITLE = "临时邮箱 - 验证码接收服务"


class WebHandler:
    """Serves the home page and static assets from the given directories."""

    def __init__(self, template_dir: str | Path, static_dir: str | Path) -> None:
        self.template_dir = Path(template_dir)
        self.static_dir = Path(static_dir)

    def register(self, app: Flask) -> None:
        """Add the home page and /static routes to app.

        Raises FileNotFoundError when the template directory holds no HTML files.
        """
        template_dir = self.template_dir.resolve()
        if not template_dir.is_dir() or not any(template_dir.glob("*.html")):
            raise FileNotFoundError(f"no HTML templates in {template_dir}")
        blueprint = Blueprint(
            "web",
            __name__,
            template_folder=str(template_dir),
            static_folder=str(self.static_dir.resolve()),
            static_url_path="/static",
        )
        blueprint.add_url_rule("/", endpoint="home_page", view_func=self.home_page, methods=["GET"])
        app.register_blueprint(blueprint)

    def home_page(self) -> str:
        """Render the home page."""
        return render_template(HOME_TEMPLATE, title=HOME_TITLE)