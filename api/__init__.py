"""HTTP surface for interview sessions."""
