"""Forecast module - period layout, forecast generation and recalculation."""
from plforecast.forecast import engine, generator, periods, schemas, routes

__all__ = ["engine", "generator", "periods", "schemas", "routes"]
