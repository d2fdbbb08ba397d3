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

"""The reconciliation pipeline for a single autoscaling notification.

Stages run in order, each taking the previous stage's results as arguments:

    ResolvingGroup -> ExtractingTags -> FilteringMembership -> ResolvingAddresses
    -> BuildingMapping -> Reconciling -> Submitting -> Done

An error in any stage moves the pipeline to Failed and is re-raised. Nothing
is submitted to Route53 unless every earlier stage succeeded.
"""

import logging
from collections import namedtuple

from . import aws
from . import records
from . import constants as const
from .exceptions import MalformedEventError

LOGGER = logging.getLogger(__name__)

Reconciliation = namedtuple('Reconciliation', ['notification',
                                               'region',
                                               'metadata',
                                               'mapping',
                                               'batch',
                                               'change_info'])

def resolve_region(notification, policy):
    """The fixed region from the policy, or the region of the notification"""
    region = policy.region or notification.region
    if not region:
        msg = "Could not determine the region for ASG {}".format(notification.group_name)
        raise MalformedEventError(msg)
    return region

class Pipeline(object):
    """Runs the reconciliation stages for notifications

    Attributes:
        session (Session|None): Boto3 session, created for the notification's
                               region when None
        policy (ReconciliationPolicy): How to reconcile
        dry_run (bool): Compute the change batch without submitting it
        state (str): The stage currently running, Done or Failed
    """

    def __init__(self, session, policy, dry_run=False):
        self.session = session
        self.policy = policy
        self.dry_run = dry_run
        self.state = None

    def run(self, notification):
        """Reconcile the DNS records for the ASG named in the notification

        Returns:
            Reconciliation

        Raises:
            AsgDnsError: On any failure, after which nothing has been submitted
        """
        LOGGER.info("Handling {} event for {}".format(notification.kind, notification.group_name))
        try:
            self.state = const.RESOLVING_GROUP
            region = resolve_region(notification, self.policy)
            if self.session is None:
                self.session = aws.create_session(region)
            group = self.resolve_group(notification.group_name)

            self.state = const.EXTRACTING_TAGS
            metadata = self.extract_tags(group)

            self.state = const.FILTERING_MEMBERSHIP
            instance_ids = self.filter_membership(group)

            self.state = const.RESOLVING_ADDRESSES
            instances = self.resolve_addresses(instance_ids)

            self.state = const.BUILDING_MAPPING
            mapping = self.build_mapping(metadata, region, instances)

            self.state = const.RECONCILING
            batch = self.reconcile(notification, metadata, region, mapping)

            self.state = const.SUBMITTING
            change_info = self.submit(batch)

            self.state = const.DONE
        except Exception as ex:
            LOGGER.error("Unable to update DNS for ASG {} while {}: {}".format(notification.group_name,
                                                                               self.state,
                                                                               ex))
            self.state = const.FAILED
            raise

        LOGGER.info("DNS has been updated for an autoscaling event")
        return Reconciliation(notification, region, metadata, mapping, batch, change_info)

    def resolve_group(self, group_name):
        LOGGER.info("* Retrieving ASG details ...")
        return aws.lookup_group(self.session, group_name)

    def extract_tags(self, group):
        LOGGER.info("* Processing ASG tags ...")
        return records.extract_role_metadata(group.tags, self.policy, group.name)

    def filter_membership(self, group):
        LOGGER.info("* Finding running instances ...")
        return records.filter_in_service(group.instances,
                                         self.policy.allow_empty_membership,
                                         group.name)

    def resolve_addresses(self, instance_ids):
        LOGGER.info("* Getting instance metadata ...")
        return aws.lookup_instances(self.session, instance_ids)

    def build_mapping(self, metadata, region, instances):
        LOGGER.info("* Building address-mappings for DNS records ...")
        return records.build_mapping(metadata, region, instances)

    def reconcile(self, notification, metadata, region, mapping):
        LOGGER.info("* Updating DNS records ...")

        candidates = []
        if self.policy.detect_deletions:
            candidates = records.canonical_names(metadata, region, notification.availability_zone)

        def lookup(name):
            return aws.lookup_record(self.session, metadata.zone_id, name)

        comment = "Autoscaling {} event for {}".format(notification.kind, notification.group_name)
        return records.reconcile(mapping,
                                 metadata.zone_id,
                                 self.policy.ttl,
                                 candidate_names = candidates,
                                 lookup = lookup,
                                 comment = comment)

    def submit(self, batch):
        if len(batch) == 0:
            LOGGER.info("  => No DNS changes to submit")
            return None

        if self.dry_run:
            LOGGER.info("  => Dry run, not submitting {} changes".format(len(batch)))
            return None

        return aws.submit_changes(self.session, batch)

def reconcile(notification, policy, session=None, dry_run=False):
    """Run the pipeline for one notification

    Args:
        notification (Notification): Normalized notification
        policy (ReconciliationPolicy): How to reconcile
        session (optional[Session]): Boto3 session, created for the
                                     notification's region if not given
        dry_run (bool): Compute the change batch without submitting it

    Returns:
        Reconciliation
    """
    return Pipeline(session, policy, dry_run).run(notification)
