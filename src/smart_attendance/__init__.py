"""Smart Attendance package.

Feature modules (geo, qrcodes, attendance, courses, users, biometrics, reports)
sit behind thin Flask controllers; services depend only on repository
protocols so the verification and signup flows run without a live backend.
"""
