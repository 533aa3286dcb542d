"""campus-insider API: equipment sharing, carpools, posts and a ranked activity feed."""

__version__ = "0.1.0"
