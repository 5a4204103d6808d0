"""Adaptadores hacia servicios externos."""
