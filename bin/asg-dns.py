#!/usr/bin/env python3

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
Reconcile the Route53 records of an autoscaling group role by hand.

Runs the same pipeline as the lambda handler, as if the given launch or
terminate event had been received for the autoscaling group. Use --dry-run to
display the changes without submitting them.
"""

import argparse
import sys

import alter_path
from asg_dns import console
from asg_dns import constants as const
from asg_dns.aws import create_session
from asg_dns.configuration import DnsParser
from asg_dns.events import Notification
from asg_dns.exceptions import AsgDnsError
from asg_dns.handler import setup_logging
from asg_dns.pipeline import reconcile

def run(args):
    policy = args.dns_config.to_policy()
    session = create_session(policy.region, args.aws_profile)
    notification = Notification(kind = args.event,
                                group_name = args.group_name,
                                region = session.region_name,
                                availability_zone = args.availability_zone)

    try:
        result = reconcile(notification, policy, session, dry_run = args.dry_run)
    except AsgDnsError as ex:
        console.error(str(ex))
        return 1

    if len(result.batch) == 0:
        console.info("No DNS changes for {}".format(args.group_name))
        return 0

    for change in result.batch:
        console.change(change)

    if args.dry_run:
        console.warning("Dry run, changes were not submitted")
    else:
        console.info("Submitted change {} ({})".format(result.change_info.get('Id'),
                                                       result.change_info.get('Status')))
    return 0

if __name__ == '__main__':
    parser = DnsParser(description = "Reconcile the Route53 records of an autoscaling group role",
                       formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--availability-zone", "-z",
                        default = None,
                        help = "Availability zone of the event, checked for deletion")
    parser.add_argument("--event", "-e",
                        choices = const.SUPPORTED_KINDS,
                        default = const.LAUNCH,
                        help = "Event to reconcile for (default: launch)")
    parser.add_argument("--aws-profile", "-p",
                        default = None,
                        help = "AWS profile to use")
    parser.add_argument("--dry-run", "-n",
                        action = "store_true",
                        default = False,
                        help = "Display the changes without submitting them")
    parser.add_argument("--verbose", "-v",
                        action = "store_true",
                        default = False,
                        help = "Log each reconciliation stage")
    parser.add_argument("group_name", help = "Name of the autoscaling group")

    args = parser.parse_args()

    console.init()
    setup_logging('INFO' if args.verbose else 'WARNING')

    sys.exit(run(args))
