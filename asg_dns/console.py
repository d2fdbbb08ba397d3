# Copyright 2016 The Johns Hopkins University Applied Physics Laboratory
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Colorized terminal output for the command line tools. colorama strips the
escape codes when output is being piped or redirected.
"""

import colorama
from colorama import Fore, Style

from . import constants as const

def init():
    colorama.init()

def _colorize(*style_msg, **kwargs):
    print(*style_msg, sep='', **kwargs)

def red(msg, **kwargs):
    return _colorize(Fore.RED, msg, Style.RESET_ALL, **kwargs)

def yellow(msg, **kwargs):
    return _colorize(Fore.YELLOW, msg, Style.RESET_ALL, **kwargs)

def green(msg, **kwargs):
    return _colorize(Fore.GREEN, msg, Style.RESET_ALL, **kwargs)

def blue(msg, **kwargs):
    return _colorize(Fore.BLUE, msg, Style.RESET_ALL, **kwargs)

def error(msg, **kwargs):
    return red('ERROR: ' + msg, **kwargs)

def warning(msg, **kwargs):
    return yellow(' WARN: ' + msg, **kwargs)

def info(msg, **kwargs):
    return blue(' INFO: ' + msg, **kwargs)

def change(change, **kwargs):
    """Print a Change, green for upserts and red for deletes"""
    msg = "{:6} {} = {}".format(change.action, change.name, ','.join(change.values))
    if change.action == const.DELETE:
        return red(msg, **kwargs)
    return green(msg, **kwargs)
