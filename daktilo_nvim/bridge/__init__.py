"""Cross-thread channels, wake bridge and session wiring"""
