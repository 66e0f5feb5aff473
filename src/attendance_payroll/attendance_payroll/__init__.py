"""Attendance reconciliation & payroll package.

Organised by feature modules (geolocation, attendance, importing, payroll)
with thin Flask controllers on top of service/repository layers.
"""
