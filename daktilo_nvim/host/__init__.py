"""Neovim host integration"""
