"""Work-stream scheduling strategies, an advection test problem, a box mesh and a gradient indicator."""

__version__ = "0.1.0"
__all__ = ["benchmark", "equation_data", "gradient", "mesh", "workstream"]