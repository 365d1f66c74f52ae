"""Utilities package"""
