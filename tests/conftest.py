import argparse
import importlib.util
import sys
from collections.abc import Callable
from pathlib import Path
from types import ModuleType

import pytest

GENERATOR_DIR = Path(__file__).resolve().parent.parent
if str(GENERATOR_DIR) not in sys.path:
    sys.path.insert(0, str(GENERATOR_DIR))

import lazygen  # noqa: E402


@pytest.fixture
def make_args() -> Callable[..., argparse.Namespace]:
    def _make_args(**overrides: object) -> argparse.Namespace:
        base_args: dict[str, object] = {
            "package": lazygen.DEFAULT_PACKAGE,
            "out": None,
            "lang": lazygen.DEFAULT_LANGUAGE,
            "gofmt": lazygen.DEFAULT_GOFMT,
            "list_types": False,
            "pairs": [],
        }
        base_args.update(overrides)
        return argparse.Namespace(**base_args)

    return _make_args


@pytest.fixture
def make_config() -> Callable[..., lazygen.GenerateConfig]:
    def _make_config(
        *pairs: str,
        package: str = "lazy",
        language: str = "python",
        output: Path | None = None,
        gofmt: str = lazygen.DEFAULT_GOFMT,
    ) -> lazygen.GenerateConfig:
        return lazygen.GenerateConfig(
            package=package,
            entries=lazygen.pair_arguments(pairs),
            language=language,
            output=output,
            gofmt=gofmt,
        )

    return _make_config


@pytest.fixture
def load_generated(tmp_path: Path) -> Callable[..., ModuleType]:
    """Write generated Python source to disk and import it as a module."""

    def _load(source: str, module_name: str = "generated_lazy") -> ModuleType:
        path = tmp_path / f"{module_name}.py"
        path.write_text(source, encoding="utf-8")
        spec = importlib.util.spec_from_file_location(module_name, path)
        assert spec is not None and spec.loader is not None
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module

    return _load
