"""Biometric attendance package.

Organized by feature modules (capture, liveness, recognition, attendance,
verification, kiosk) with a thin Flask controller layer on top of plain
service/repository layers.
"""
