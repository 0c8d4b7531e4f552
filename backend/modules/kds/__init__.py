# backend/modules/kds/__init__.py

"""
Kitchen Display System (KDS) module keeping kitchen tickets in sync between
the POS and every kitchen display.
"""
