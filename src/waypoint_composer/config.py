import pathlib

import pydantic_settings


class WaypointComposerDirs(pydantic_settings.BaseSettings):
    PROJECT_ROOT: pathlib.Path = pathlib.Path(__file__).parents[2]
    DATA: pathlib.Path = PROJECT_ROOT / "WaypointData"
    EXPORTS: pathlib.Path = DATA / "Exports"


class WaypointComposerConfig(pydantic_settings.BaseSettings):
    DIR: WaypointComposerDirs = WaypointComposerDirs()

    # Persistence database (offline durability of the point collection)
    STORE_URL: str = f"sqlite:///{DIR.DATA / 'waypoints.db'}"

    # --- CSV import / export ---
    # Rows scanned when inferring column types
    SCHEMA_SAMPLE_SIZE: int = 100
    CSV_LINE_TERMINATOR: str = "\n"

    # --- Editing ---
    # Units: degrees
    DUPLICATE_OFFSET_DEG: float = 0.0001

    MIN_POLYGON_VERTICES: int = 3
    MIN_ROTATION_SELECTION: int = 2

    # --- Pointer drag sensitivity ---
    ALTITUDE_SENSITIVITY: float = 0.5  # metres per vertical pixel
    ROTATION_SENSITIVITY: float = 0.5  # degrees per horizontal pixel

    # Ellipsoid for the rotation primitive
    ELLIPSOID: str = "WGS84"


config = WaypointComposerConfig()
