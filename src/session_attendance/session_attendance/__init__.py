"""Session Attendance package.

This package is organized by feature modules (sessions, users, location,
devices, attendance, ...) with a thin Flask controller layer and
service/repository layers. The check-in admission pipeline lives in
``attendance.engine``.
"""
