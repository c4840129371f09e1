import re
from pathlib import Path


ROOT_DIR = Path(__file__).resolve().parents[1]
PACKAGE_DIR = ROOT_DIR / "hydration_ping"
ROUTERS_DIR = PACKAGE_DIR / "web" / "routers"


def test_routers_do_not_import_application_module():
    for router_file in ROUTERS_DIR.glob("*_router.py"):
        source = router_file.read_text(encoding="utf-8")
        assert re.search(r"^\s*from\s+hydration_ping\.application\s+import\b", source, flags=re.MULTILINE) is None
        assert re.search(r"^\s*import\s+hydration_ping\.application\b", source, flags=re.MULTILINE) is None


def test_package_init_has_no_application_side_effect_import():
    package_init = (PACKAGE_DIR / "__init__.py").read_text(encoding="utf-8")
    assert ".application import" not in package_init


def test_asgi_entrypoint_exports_application_symbols():
    asgi_entrypoint = (PACKAGE_DIR / "asgi.py").read_text(encoding="utf-8")
    assert "from hydration_ping.application import app, create_app" in asgi_entrypoint


def test_services_do_not_read_the_wall_clock():
    for service_file in (PACKAGE_DIR / "services").glob("*.py"):
        source = service_file.read_text(encoding="utf-8")
        assert "datetime.now(" not in source, service_file.name
        assert "date.today(" not in source, service_file.name
        assert re.search(r"(?<![\w.])time\.time\(", source) is None, service_file.name


def test_services_do_not_depend_on_web_layer():
    for service_file in (PACKAGE_DIR / "services").glob("*.py"):
        source = service_file.read_text(encoding="utf-8")
        assert "hydration_ping.web" not in source, service_file.name
        assert "fastapi" not in source, service_file.name
