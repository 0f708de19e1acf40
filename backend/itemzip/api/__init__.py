"""HTTP surface of itemzip."""
