"""Materialize a portfolio project from a template and user data."""
import json
import re
import shutil
from pathlib import Path
from typing import Dict, List, Optional

from portforge.core.logger import get_logger
from portforge.models.user import UserData

logger = get_logger(__name__)

TEMPLATE_SUFFIX = ".ejs"
SOURCE_SUFFIX = ".jsx"

# Placeholder -> value used when the user left the field empty
PLACEHOLDER_DEFAULTS: Dict[str, str] = {
    "name": "Default Name",
    "about": "Default About Text",
    "experience": "Default Experience",
    "skills": "Default Skills",
}

# Sections rendered by the template's App component
SECTION_COMPONENTS = [
    "Navbar",
    "Hero",
    "About",
    "Projects",
    "Clients",
    "WorkExperience",
    "Achievements",
    "Certifications",
    "Contact",
    "Footer",
]

_PLACEHOLDER = re.compile(r"\{(" + "|".join(PLACEHOLDER_DEFAULTS) + r")\}")

APP_ENTRY = Path("src") / "App.jsx"
MAIN_ENTRY = Path("src") / "main.jsx"

# Placeholders sit in JSX text; these characters would otherwise open
# an expression or a tag
_JSX_TEXT_ESCAPES = str.maketrans({
    "{": '{"{"}',
    "}": '{"}"}',
    "<": "&lt;",
    ">": "&gt;",
    "&": "&amp;",
})


def escape_jsx_text(value: str) -> str:
    """Make value render literally when placed between JSX tags."""
    return value.translate(_JSX_TEXT_ESCAPES)


class TemplateMaterializer:
    """Copies a template tree and fills it with one user's data."""

    def __init__(self, template_dir: Path):
        self.template_dir = Path(template_dir)

    def materialize(self, output_dir: Path, user_data: UserData, overwrite: bool = False) -> Path:
        """Produce a runnable project for user_data in output_dir.

        Args:
            output_dir: Destination directory (must not exist unless overwrite)
            user_data: Profile used to fill placeholders
            overwrite: Remove an existing output_dir first

        Returns:
            Path to the materialized project

        Raises:
            FileNotFoundError: Template or an entry file is missing
            FileExistsError: output_dir exists and overwrite is False
        """
        output_dir = Path(output_dir)
        if not self.template_dir.is_dir():
            raise FileNotFoundError(f"Template directory not found: {self.template_dir}")

        if output_dir.exists():
            if not overwrite:
                raise FileExistsError(f"Output directory already exists: {output_dir}")
            shutil.rmtree(output_dir)

        logger.info(f"Generating portfolio at: {output_dir}")
        shutil.copytree(self.template_dir, output_dir)

        rendered = self.render_templates(output_dir, user_data)
        logger.debug(f"Rendered {len(rendered)} template file(s)")

        self.inject_app_props(output_dir)
        self.inject_user_data(output_dir, user_data)

        logger.info("Portfolio generated successfully")
        return output_dir

    def render_templates(self, root: Path, user_data: UserData) -> List[Path]:
        """Substitute placeholders in every template file under root.

        Each ``*.ejs`` file is rewritten as ``*.jsx`` and the original removed.
        User values are escaped for JSX text, defaults are inserted as is.

        Returns:
            Paths of the generated source files
        """
        values = {}
        for key, default in PLACEHOLDER_DEFAULTS.items():
            value = user_data.placeholder_value(key)
            values[key] = escape_jsx_text(value) if value else default

        generated = []
        for template_file in sorted(Path(root).rglob(f"*{TEMPLATE_SUFFIX}")):
            if not template_file.is_file():
                continue

            content = template_file.read_text(encoding="utf-8")
            content = _PLACEHOLDER.sub(lambda m: values[m.group(1)], content)

            target = template_file.with_suffix(SOURCE_SUFFIX)
            target.write_text(content, encoding="utf-8")
            template_file.unlink()
            generated.append(target)

        return generated

    def inject_app_props(self, root: Path) -> None:
        """Make the App component accept userData and hand it to each section."""
        app_file = Path(root) / APP_ENTRY
        content = app_file.read_text(encoding="utf-8")

        content = content.replace("const App = () => {", "const App = ({ userData }) => {")
        for component in SECTION_COMPONENTS:
            content = content.replace(f"<{component} />", f"<{component} userData={{userData}} />")

        app_file.write_text(content, encoding="utf-8")

    def inject_user_data(self, root: Path, user_data: UserData) -> None:
        """Pass the serialized profile into App from the entry module."""
        main_file = Path(root) / MAIN_ENTRY
        content = main_file.read_text(encoding="utf-8")

        payload = json.dumps(user_data.to_payload(), ensure_ascii=False)
        content = content.replace("<App />", f"<App userData={{{payload}}} />")

        main_file.write_text(content, encoding="utf-8")


def write_vercel_config(project_dir: Path, public: bool = True, extra: Optional[Dict] = None) -> Path:
    """Write vercel.json so deployments of the project are public."""
    config = {"public": public}
    if extra:
        config.update(extra)

    config_path = Path(project_dir) / "vercel.json"
    config_path.write_text(json.dumps(config, indent=2) + "\n", encoding="utf-8")
    logger.info("Generated vercel.json configuration")
    return config_path
