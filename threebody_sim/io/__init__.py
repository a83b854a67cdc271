"""State import/export."""

from threebody_sim.io.state_io import (
    StateFormatError,
    export_state,
    load_state,
    parse_state,
    save_state,
)

__all__ = ["StateFormatError", "export_state", "load_state", "parse_state", "save_state"]
