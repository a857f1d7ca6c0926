"""Engine schemas: pydantic request models and route dataclasses."""
