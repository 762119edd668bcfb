# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""agencydesk - multi-currency analytics for freelance and agency dashboards."""

__version__ = "0.1.0"
