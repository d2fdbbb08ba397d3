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

import io
import unittest
import os, sys

# Allow unit test files to import the target library modules
cur_dir = os.path.dirname(os.path.realpath(__file__))
parent_dir = os.path.normpath(os.path.join(cur_dir, '..', '..'))
sys.path.append(parent_dir)

from colorama import Fore, Style

from asg_dns import console
from asg_dns import constants as const
from asg_dns.records import Change

class TestConsole(unittest.TestCase):
    def test_upsert_is_green(self):
        fh = io.StringIO()
        change = Change(const.UPSERT, 'web.eu-west-1.i.example.com', ('10.0.0.1', '10.0.0.2'), 300)

        console.change(change, file=fh)

        expected = Fore.GREEN + 'UPSERT web.eu-west-1.i.example.com = 10.0.0.1,10.0.0.2' + Style.RESET_ALL + '\n'
        self.assertEqual(expected, fh.getvalue())

    def test_delete_is_red(self):
        fh = io.StringIO()
        change = Change(const.DELETE, 'web.eu-west-1a.i.example.com', ('10.0.0.1',), 300)

        console.change(change, file=fh)

        self.assertTrue(fh.getvalue().startswith(Fore.RED + 'DELETE '))

    def test_error(self):
        fh = io.StringIO()
        console.error('Unable to find autoscaling group', file=fh)
        self.assertIn('ERROR: Unable to find autoscaling group', fh.getvalue())
