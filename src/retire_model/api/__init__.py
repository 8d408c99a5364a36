# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""HTTP service exposing the cash-flow engine and the Monte Carlo analysis."""

from .app import app

__all__ = [
    'app',
]
