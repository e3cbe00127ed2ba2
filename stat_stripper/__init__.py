"""Strip unwanted statistic categories from Alma user records."""

__version__ = "0.1.0"
