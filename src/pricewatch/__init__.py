"""PriceWatch: marketplace price tracking, trend signals and alert delivery."""

__version__ = "1.0.0"
