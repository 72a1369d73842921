"""Stateless and stateful services behind the quote read interface."""
