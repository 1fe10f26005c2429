"""Shared types, configuration and logging for daktilo_nvim"""
