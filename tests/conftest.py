"""Shared test fixtures for portforge tests."""
import pytest

from portforge.core.config import Credentials, PipelineConfig
from portforge.models.user import UserData

CREDENTIAL_ENV_VARS = [
    "GITHUB_TOKEN",
    "GIT_ACCESS_TOKEN",
    "GITHUB_USERNAME",
    "VERCEL_TOKEN",
    "VERCEL_ACCESS_TOKEN",
    "SUPABASE_URL",
    "SUPABASE_KEY",
    "PORTFORGE_CONFIG",
    "PORTFORGE_TEMPLATE_DIR",
    "PORTFORGE_WORK_DIR",
    "PORTFORGE_BRANCH",
    "PORTFORGE_VERCEL_TEAM_ID",
    "PORTFORGE_KEEP_OUTPUT",
    "PORTFORGE_ROLLBACK",
    "PORTFORGE_MOCK",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Remove portforge-related variables from the environment."""
    for name in CREDENTIAL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def template_dir(tmp_path):
    """Small portfolio template with two .ejs sections and both entry files."""
    root = tmp_path / "template"
    (root / "src" / "sections").mkdir(parents=True)
    (root / "public").mkdir()

    (root / "package.json").write_text('{"name": "portfolio"}\n')
    (root / "public" / "favicon.svg").write_text("<svg/>\n")
    (root / "src" / "App.jsx").write_text(
        "import Hero from './sections/Hero';\n"
        "import About from './sections/About';\n"
        "\n"
        "const App = () => {\n"
        "  return (\n"
        "    <main>\n"
        "      <Hero />\n"
        "      <About />\n"
        "    </main>\n"
        "  );\n"
        "};\n"
        "\n"
        "export default App;\n"
    )
    (root / "src" / "main.jsx").write_text(
        "import App from './App';\n"
        "ReactDOM.createRoot(document.getElementById('root')).render(<App />);\n"
    )
    (root / "src" / "sections" / "Hero.ejs").write_text("<h1>{name}</h1>\n<p>{about}</p>\n")
    (root / "src" / "sections" / "About.ejs").write_text("{experience} | {skills}\n")
    return root


@pytest.fixture
def ada():
    """User data from the materialization scenario."""
    return UserData(name="Ada Lovelace", about="Engineer")


@pytest.fixture
def credentials():
    return Credentials(
        source_host_token="gh-token",
        deploy_token="vc-token",
        source_host_owner="octocat",
        storage_url="https://store.example.co",
        storage_key="service-key",
    )


@pytest.fixture
def pipeline_config(tmp_path, template_dir, credentials):
    """Pipeline config rooted in tmp_path with no cleanup delays."""
    return PipelineConfig(
        credentials=credentials,
        template_dir=template_dir,
        work_dir=tmp_path / "work",
        cleanup_initial_delay=0.0,
        cleanup_retry_delay=0.0,
    )
