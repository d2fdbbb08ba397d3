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

"""Derive the DNS records a role should have and the Route53 changes needed
to get there.

Every function in this module is free of AWS calls. Looking up the current
value of a record, which is needed to delete it, is done through the lookup
function given to reconcile().
"""

import logging
from collections import namedtuple

from . import constants as const
from .configuration import normalize_zone_id
from .exceptions import MissingTagError, DuplicateTagError, NoInstancesError

LOGGER = logging.getLogger(__name__)

RoleMetadata = namedtuple('RoleMetadata', ['role', 'domain_suffix', 'zone_id'])

def normalize_name(name):
    return name.rstrip('.').lower()

def same_name(a, b):
    """Compare record names, ignoring case and the trailing dot Route53 adds"""
    return normalize_name(a) == normalize_name(b)

def record_name(role, location, domain):
    return const.RECORD_NAME_FORMAT.format(role = role,
                                           location = location,
                                           domain = domain)

def canonical_names(metadata, region, availability_zone=None):
    """The region wide name and, if the availability zone is known, the zone
    name for the role
    """
    names = [record_name(metadata.role, region, metadata.domain_suffix)]
    if availability_zone:
        names.append(record_name(metadata.role, availability_zone, metadata.domain_suffix))
    return names

def _tag_items(tags):
    if hasattr(tags, 'items'):
        return list(tags.items())

    items = []
    for tag in tags:
        if isinstance(tag, dict):
            items.append((tag['Key'], tag['Value']))
        else:
            items.append(tuple(tag))
    return items

def extract_role_metadata(tags, policy, group_name=None):
    """Read the role, domain and zone id from the ASG tags

    The domain and zone id are only read from the tags if the policy doesn't
    give a fixed value for them. The required values are checked in the order
    role, domain, zone id and the first missing one is reported.

    Args:
        tags (list|dict): (key, value) tuples, AWS tag dicts or a key => value dict
        policy (ReconciliationPolicy): Tag names and fixed values
        group_name (optional[str]): Used in error messages

    Returns:
        RoleMetadata

    Raises:
        MissingTagError: If a required tag is missing or empty
        DuplicateTagError: If a recognized tag appears more than once
    """
    recognized = [policy.role_tag]
    if policy.domain is None:
        recognized.append(policy.domain_tag)
    if policy.zone_id is None:
        recognized.append(policy.zone_id_tag)

    found = {}
    for key, value in _tag_items(tags):
        if key not in recognized:
            continue
        if key in found:
            raise DuplicateTagError(key, group_name)
        found[key] = value
        LOGGER.info('  => {}: "{}"'.format(key, value))

    role = found.get(policy.role_tag)
    if not role:
        raise MissingTagError('role', policy.role_tag, group_name)

    if policy.domain is not None:
        domain = policy.domain
    else:
        domain = found.get(policy.domain_tag)
        if not domain:
            raise MissingTagError('domain_suffix', policy.domain_tag, group_name)

    if policy.zone_id is not None:
        zone_id = policy.zone_id
    else:
        zone_id = found.get(policy.zone_id_tag)
        if not zone_id:
            raise MissingTagError('zone_id', policy.zone_id_tag, group_name)

    return RoleMetadata(role = role,
                        domain_suffix = domain.rstrip('.'),
                        zone_id = normalize_zone_id(zone_id))

def filter_in_service(members, allow_empty, group_name=None):
    """Ids of the ASG members that are InService, in the ASG's order

    Args:
        members (list[GroupMember]): ASG members
        allow_empty (bool): If having no InService members is valid
        group_name (optional[str]): Used in error messages

    Raises:
        NoInstancesError: If there are no InService members and allow_empty is False
    """
    instance_ids = [m.id for m in members if m.lifecycle_state == const.IN_SERVICE]

    if len(instance_ids) == 0 and not allow_empty:
        raise NoInstancesError(group_name)

    LOGGER.info('  => Found {} running instances: {}'.format(len(instance_ids),
                                                             ','.join(instance_ids)))
    return instance_ids

def build_mapping(metadata, region, instances):
    """Group the instance addresses by region wide and availability zone
    record names

    A name is only in the mapping if at least one instance contributes to it,
    and the addresses are in the order of the instances.

    Args:
        metadata (RoleMetadata): Role and domain of the records
        region (str): Region of the ASG
        instances (list[Instance]): Instances to map

    Returns:
        dict: record name => list of addresses
    """
    mapping = {}
    for instance in instances:
        names = (record_name(metadata.role, region, metadata.domain_suffix),
                 record_name(metadata.role, instance.availability_zone, metadata.domain_suffix))
        for name in names:
            if name not in mapping:
                LOGGER.info('  => {}'.format(name))
                mapping[name] = []
            mapping[name].append(instance.private_address)
    return mapping

class Change(namedtuple('Change', ['action', 'name', 'values', 'ttl'])):
    """A single Route53 change. ttl is None for deletes of records stored
    without a TTL
    """
    __slots__ = ()

    def request(self):
        record = {
            'Name': self.name,
            'Type': const.RECORD_TYPE,
            'ResourceRecords': [{'Value': value} for value in self.values],
        }
        if self.ttl is not None:
            record['TTL'] = self.ttl

        return {
            'Action': self.action,
            'ResourceRecordSet': record,
        }

class ChangeBatch(object):
    """All of the changes for one reconciliation, submitted as one request"""

    def __init__(self, zone_id, changes, comment=None):
        self.zone_id = zone_id
        self.changes = tuple(changes)
        self.comment = comment

    def __len__(self):
        return len(self.changes)

    def __iter__(self):
        return iter(self.changes)

    def __repr__(self):
        return "ChangeBatch('{}', {} changes)".format(self.zone_id, len(self.changes))

    @property
    def upserts(self):
        return [c for c in self.changes if c.action == const.UPSERT]

    @property
    def deletes(self):
        return [c for c in self.changes if c.action == const.DELETE]

    def request(self):
        """Arguments for route53 change_resource_record_sets()"""
        batch = {'Changes': [c.request() for c in self.changes]}
        if self.comment:
            batch['Comment'] = self.comment

        return {
            'HostedZoneId': self.zone_id,
            'ChangeBatch': batch,
        }

def reconcile(mapping, zone_id, ttl, candidate_names=(), lookup=None, comment=None):
    """Compute the changes that make the zone match the mapping

    Every name in the mapping is upserted. Each candidate name that is not in
    the mapping is deleted if lookup() finds a current record for it.

    Args:
        mapping (dict): record name => list of addresses
        zone_id (str): Route53 hosted zone id
        ttl (int): TTL of the upserted records
        candidate_names (list[str]): Names to delete if they have no addresses
        lookup (function): Called with a record name, returns the current
                           ResourceRecordSet or None. Required if there are
                           candidate names
        comment (optional[str]): Comment for the change batch

    Returns:
        ChangeBatch
    """
    changes = []
    for name, values in mapping.items():
        LOGGER.info('  => {} = {}'.format(name, ','.join(values)))
        changes.append(Change(const.UPSERT, name, tuple(values), ttl))

    seen = set()
    for name in candidate_names:
        key = normalize_name(name)
        if key in seen:
            continue
        seen.add(key)

        if any(same_name(name, existing) for existing in mapping):
            continue

        LOGGER.info('  => {} = DELETE'.format(name))
        record = lookup(name)
        if record is None:
            LOGGER.info('  => Unable to find existing record "{}" - no need to delete'.format(name))
            continue
        if 'AliasTarget' in record or 'SetIdentifier' in record:
            LOGGER.warning('  => Record "{}" is not a simple A record, not deleting'.format(name))
            continue

        values = tuple(r['Value'] for r in record.get('ResourceRecords', []))
        changes.append(Change(const.DELETE, name, values, record.get('TTL')))
        LOGGER.info('  => Added "{}" deletion to change-batch.'.format(name))

    return ChangeBatch(zone_id, changes, comment)
