"""Tests for the Jinja2 environment."""

import datalink.html
from datalink.html import get_jinja_env


class TestGetJinjaEnv:
    """Tests for get_jinja_env."""

    def test_singleton(self):
        """Returns the same environment on every call."""
        assert get_jinja_env() is get_jinja_env()

    def test_autoescape_enabled(self):
        """Markup in values is escaped."""
        template = get_jinja_env().from_string("{{ v }}")

        assert template.render(v="<b>") == "&lt;b&gt;"

    def test_loads_package_templates(self):
        """Templates ship inside the package."""
        assert "report.html" in get_jinja_env().list_templates()

    def test_filters_registered(self):
        """Display filters are available to templates."""
        env = get_jinja_env()

        for name in ("format_value", "format_duration", "format_uptime", "format_grid_date"):
            assert name in env.filters

    def test_filters_render(self):
        """Filters format values inside templates."""
        env = get_jinja_env()
        template = env.from_string(
            "{{ up | format_uptime }}|{{ g | format_grid_date('date') }}|{{ b | format_value }}"
        )

        assert template.render(up=93780, g=45306.5, b=True) == "1d 2h 3m|01/15/2024|TRUE"

    def test_reset(self):
        """Clearing the cached env builds a new one."""
        first = get_jinja_env()
        datalink.html._jinja_env = None

        assert get_jinja_env() is not first
