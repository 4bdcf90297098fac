from barviz_layout.adapters.normalize import points_from_rows

__all__ = ["points_from_rows"]
