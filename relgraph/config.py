from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Store settings
    local_store_path: Path = Path("data/graph.json")
    default_tenant_id: str = "default"

    # Traversal settings
    default_seed_count: int = 10
    default_depth: int = 2

    # Canvas settings
    canvas_width: float = 1200
    canvas_height: float = 800

    # Force simulation settings
    charge_strength: float = -1500
    link_distance: float = 200
    center_strength: float = 1.0
    velocity_decay: float = 0.4
    alpha_min: float = 0.001
    drag_alpha_target: float = 0.3
    max_layout_steps: int = 300
    simulation_seed: int = 42

    log_level: str = "INFO"  # Can be DEBUG, INFO, WARNING, ERROR, CRITICAL


settings = Settings()
