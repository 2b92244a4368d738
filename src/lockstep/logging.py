# Copyright 2026 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0

"""Structured logging for lockstep.

Configures `structlog <https://www.structlog.org/>`_ on top of the
standard library root logger. Events are snake_case names with
key/value context, e.g.::

    dependency_rewritten  package=pkg-b dep=pkg-a old=^1.0.0 new=^1.1.0
    lockfile_not_found    root=/repo

Console rendering is the default; ``json_log=True`` switches to one
JSON object per line. Output always goes to stderr. Every logger lives
under the ``lockstep`` namespace, which carries the configured level.

Usage::

    from lockstep.logging import configure_logging, get_logger

    configure_logging(verbose=True)
    log = get_logger(__name__)
    log.info('lockfile_saved', path='/repo/package-lock.json')
"""

from __future__ import annotations

import logging
import sys

import structlog

# Parent of every logger lockstep creates.
LOGGER_NAMESPACE = 'lockstep'


def configure_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    json_log: bool = False,
) -> None:
    """Configure structlog for lockstep.

    Safe to call more than once; the last call wins.

    Args:
        verbose: Enable debug-level output (swallowed lock file
            failures are reported at this level).
        quiet: Only warnings and errors.
        json_log: Use JSON output instead of console output.
    """
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        format='%(message)s',
        stream=sys.stderr,
        level=level,
        force=True,
    )

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt='iso'),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_log:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    for handler in logging.root.handlers:
        handler.setFormatter(formatter)
    logging.getLogger(LOGGER_NAMESPACE).setLevel(level)


def get_logger(name: str = LOGGER_NAMESPACE) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger under the ``lockstep`` namespace.

    Names outside the namespace are nested under it, so ``"sync"``
    becomes ``"lockstep.sync"``. Module names such as
    ``"lockstep.lockfile"`` are used as given.
    """
    return structlog.get_logger(logger_name(name))


def logger_name(name: str) -> str:
    """Return ``name`` placed under :data:`LOGGER_NAMESPACE`."""
    if name == LOGGER_NAMESPACE or name.startswith(f'{LOGGER_NAMESPACE}.'):
        return name
    return f'{LOGGER_NAMESPACE}.{name}'


__all__ = [
    'LOGGER_NAMESPACE',
    'configure_logging',
    'get_logger',
    'logger_name',
]
