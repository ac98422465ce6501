"""Default city tick pipeline."""

from importlib import resources
from pathlib import Path

from citysim.core.pipeline import Pipeline


def create_default_pipeline() -> Pipeline:
    """
    Create the default tick pipeline from ``default_pipeline.yml``.

    Returns
    -------
    Pipeline
        Production, then labor, then population, then market, then the
        calendar. Edit it with ``insert_after()``, ``remove()`` and
        ``replace()``, or load another file with ``Pipeline.from_yaml()``.
    """
    import citysim.events  # noqa: F401  (registers the built-in events)

    traversable = resources.files("citysim") / "default_pipeline.yml"
    with resources.as_file(traversable) as yaml_fs_path:
        return Pipeline.from_yaml(Path(yaml_fs_path))
