# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import os

from skyhook.log import setup_logging

setup_logging(os.getenv("SKYHOOK_LOG_LEVEL", "DEBUG"))
