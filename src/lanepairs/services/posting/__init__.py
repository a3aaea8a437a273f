from .expander import expand, row_count

__all__ = ["expand", "row_count"]
