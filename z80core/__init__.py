"""A cycle-counting Z80 CPU core and a runner for CP/M-style instruction exercisers."""

__version__ = "0.1.0"
__all__ = ["registers", "alu", "cpu", "zex"]