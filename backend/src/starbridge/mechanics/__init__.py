"""Pure game rules: no I/O, no session awareness."""
