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

import unittest
from unittest.mock import MagicMock
import os, sys

# Allow unit test files to import the target library modules
cur_dir = os.path.dirname(os.path.realpath(__file__))
parent_dir = os.path.normpath(os.path.join(cur_dir, '..', '..'))
sys.path.append(parent_dir)

from asg_dns import constants as const
from asg_dns.aws import GroupMember, Instance
from asg_dns.configuration import DnsConfiguration
from asg_dns.exceptions import MissingTagError, DuplicateTagError, NoInstancesError
from asg_dns.records import (RoleMetadata, Change, ChangeBatch, extract_role_metadata,
                             filter_in_service, build_mapping, reconcile, canonical_names)

POLICY = DnsConfiguration(FLAVOR='eventbridge').to_policy()
METADATA = RoleMetadata('web', 'example.com', 'Z123')

TAGS = [
    ('Name', 'web-server'),
    ('role', 'web'),
    ('r53-domain-name', 'example.com'),
    ('r53-zone-id', 'Z123'),
]

class TestExtractRoleMetadata(unittest.TestCase):
    def test_all_tags(self):
        actual = extract_role_metadata(TAGS, POLICY, 'web-asg')
        self.assertEqual(METADATA, actual)

    def test_missing_domain_tag(self):
        tags = [t for t in TAGS if t[0] != 'r53-domain-name']

        with self.assertRaises(MissingTagError) as cm:
            extract_role_metadata(tags, POLICY, 'web-asg')

        self.assertEqual('domain_suffix', cm.exception.field)
        self.assertEqual('r53-domain-name', cm.exception.tag)
        self.assertIn('web-asg', str(cm.exception))

    def test_first_missing_tag_is_reported(self):
        tags = [('r53-zone-id', 'Z123')]

        with self.assertRaises(MissingTagError) as cm:
            extract_role_metadata(tags, POLICY)

        self.assertEqual('role', cm.exception.field)

    def test_missing_zone_tag(self):
        tags = [t for t in TAGS if t[0] != 'r53-zone-id']

        with self.assertRaises(MissingTagError) as cm:
            extract_role_metadata(tags, POLICY)

        self.assertEqual('zone_id', cm.exception.field)

    def test_empty_tag_value_is_missing(self):
        tags = [('role', ''), ('r53-domain-name', 'example.com'), ('r53-zone-id', 'Z123')]

        with self.assertRaises(MissingTagError) as cm:
            extract_role_metadata(tags, POLICY)

        self.assertEqual('role', cm.exception.field)

    def test_duplicate_tag(self):
        tags = TAGS + [('role', 'api')]

        with self.assertRaises(DuplicateTagError) as cm:
            extract_role_metadata(tags, POLICY, 'web-asg')

        self.assertEqual('role', cm.exception.tag)

    def test_duplicate_unrecognized_tag_is_ignored(self):
        tags = TAGS + [('Name', 'other')]
        actual = extract_role_metadata(tags, POLICY)
        self.assertEqual(METADATA, actual)

    def test_fixed_domain_and_zone(self):
        policy = POLICY._replace(domain = 'tst.example.io', zone_id = 'Z999')
        tags = [('role', 'web')]

        actual = extract_role_metadata(tags, policy)

        self.assertEqual(RoleMetadata('web', 'tst.example.io', 'Z999'), actual)

    def test_aws_tag_dicts(self):
        tags = [{'Key': k, 'Value': v} for k, v in TAGS]
        actual = extract_role_metadata(tags, POLICY)
        self.assertEqual(METADATA, actual)

    def test_tag_mapping(self):
        actual = extract_role_metadata(dict(TAGS), POLICY)
        self.assertEqual(METADATA, actual)

    def test_zone_id_and_domain_are_normalized(self):
        tags = [('role', 'web'),
                ('r53-domain-name', 'example.com.'),
                ('r53-zone-id', '/hostedzone/Z123')]

        actual = extract_role_metadata(tags, POLICY)

        self.assertEqual(METADATA, actual)

class TestFilterInService(unittest.TestCase):
    def test_preserves_order(self):
        members = [GroupMember('i-3', 'InService'),
                   GroupMember('i-1', 'Terminating'),
                   GroupMember('i-2', 'InService'),
                   GroupMember('i-4', 'Pending')]

        actual = filter_in_service(members, allow_empty = False)

        self.assertEqual(['i-3', 'i-2'], actual)

    def test_empty_strict(self):
        members = [GroupMember('i-1', 'Terminating')]

        with self.assertRaises(NoInstancesError):
            filter_in_service(members, allow_empty = False, group_name = 'web-asg')

    def test_empty_permissive(self):
        members = [GroupMember('i-1', 'Terminating')]
        actual = filter_in_service(members, allow_empty = True)
        self.assertEqual([], actual)

class TestBuildMapping(unittest.TestCase):
    def test_region_and_zone_records(self):
        instances = [Instance('i-1', '10.0.0.1', 'eu-west-1a'),
                     Instance('i-2', '10.0.0.2', 'eu-west-1b')]

        actual = build_mapping(METADATA, 'eu-west-1', instances)

        expected = {
            'web.eu-west-1.i.example.com': ['10.0.0.1', '10.0.0.2'],
            'web.eu-west-1a.i.example.com': ['10.0.0.1'],
            'web.eu-west-1b.i.example.com': ['10.0.0.2'],
        }
        self.assertEqual(expected, actual)

    def test_addresses_keep_instance_order(self):
        instances = [Instance('A', '10.0.0.3', 'zone1'),
                     Instance('B', '10.0.0.1', 'zone1'),
                     Instance('C', '10.0.0.2', 'zone2')]

        actual = build_mapping(METADATA, 'region', instances)

        self.assertEqual(['10.0.0.3', '10.0.0.1'], actual['web.zone1.i.example.com'])
        self.assertEqual(['10.0.0.2'], actual['web.zone2.i.example.com'])
        self.assertEqual(['10.0.0.3', '10.0.0.1', '10.0.0.2'], actual['web.region.i.example.com'])

    def test_every_address_in_two_records(self):
        instances = [Instance('i-{}'.format(i),
                              '10.0.0.{}'.format(i),
                              'us-east-1{}'.format('abc'[i % 3]))
                     for i in range(10)]

        actual = build_mapping(METADATA, 'us-east-1', instances)

        for values in actual.values():
            self.assertNotEqual(0, len(values))
        for instance in instances:
            count = sum(values.count(instance.private_address) for values in actual.values())
            self.assertEqual(2, count)

    def test_duplicate_addresses_are_kept(self):
        instances = [Instance('i-1', '10.0.0.1', 'zone1'),
                     Instance('i-2', '10.0.0.1', 'zone1')]

        actual = build_mapping(METADATA, 'region', instances)

        self.assertEqual(['10.0.0.1', '10.0.0.1'], actual['web.zone1.i.example.com'])

    def test_no_instances(self):
        self.assertEqual({}, build_mapping(METADATA, 'eu-west-1', []))

    def test_repeatable(self):
        instances = [Instance('i-1', '10.0.0.1', 'eu-west-1a'),
                     Instance('i-2', '10.0.0.2', 'eu-west-1b')]

        first = build_mapping(METADATA, 'eu-west-1', instances)
        second = build_mapping(METADATA, 'eu-west-1', instances)

        self.assertEqual(first, second)
        self.assertIsNot(first, second)

class TestReconcile(unittest.TestCase):
    MAPPING = {
        'web.eu-west-1.i.example.com': ['10.0.0.1', '10.0.0.2'],
        'web.eu-west-1a.i.example.com': ['10.0.0.1'],
        'web.eu-west-1b.i.example.com': ['10.0.0.2'],
    }

    def test_upserts(self):
        batch = reconcile(self.MAPPING, 'Z123', 300)

        self.assertEqual('Z123', batch.zone_id)
        self.assertEqual(3, len(batch))
        self.assertEqual([], batch.deletes)
        for change in batch:
            self.assertEqual(const.UPSERT, change.action)
            self.assertEqual(300, change.ttl)
        self.assertEqual(('10.0.0.1', '10.0.0.2'), batch.changes[0].values)

    def test_delete_lookup_only_for_missing_names(self):
        mapping = {'web.eu-west-1.i.example.com': ['10.0.0.2'],
                   'web.eu-west-1b.i.example.com': ['10.0.0.2']}
        candidates = canonical_names(METADATA, 'eu-west-1', 'eu-west-1a')
        lookup = MagicMock(return_value = None)

        batch = reconcile(mapping, 'Z123', 300, candidates, lookup)

        lookup.assert_called_once_with('web.eu-west-1a.i.example.com')
        self.assertEqual(2, len(batch))
        self.assertEqual([], batch.deletes)

    def test_delete_existing_record(self):
        mapping = {'web.eu-west-1.i.example.com': ['10.0.0.2'],
                   'web.eu-west-1b.i.example.com': ['10.0.0.2']}
        candidates = canonical_names(METADATA, 'eu-west-1', 'eu-west-1a')
        lookup = MagicMock(return_value = {
            'Name': 'web.eu-west-1a.i.example.com.',
            'Type': 'A',
            'TTL': 60,
            'ResourceRecords': [{'Value': '10.0.0.1'}],
        })

        batch = reconcile(mapping, 'Z123', 300, candidates, lookup)

        self.assertEqual(3, len(batch))
        expected = Change(const.DELETE, 'web.eu-west-1a.i.example.com', ('10.0.0.1',), 60)
        self.assertEqual([expected], batch.deletes)
        # Deletes come after the upserts
        self.assertEqual(expected, batch.changes[-1])

    def test_trailing_dot_counts_as_present(self):
        mapping = {'web.eu-west-1.i.example.com.': ['10.0.0.2']}
        lookup = MagicMock()

        reconcile(mapping, 'Z123', 300, ['web.eu-west-1.i.example.com'], lookup)

        lookup.assert_not_called()

    def test_alias_record_not_deleted(self):
        lookup = MagicMock(return_value = {
            'Name': 'web.eu-west-1.i.example.com.',
            'Type': 'A',
            'AliasTarget': {'DNSName': 'elb.amazonaws.com.'},
        })

        batch = reconcile({}, 'Z123', 300, ['web.eu-west-1.i.example.com'], lookup)

        self.assertEqual(0, len(batch))

    def test_request(self):
        batch = ChangeBatch('Z123', [
            Change(const.UPSERT, 'web.eu-west-1.i.example.com', ('10.0.0.1', '10.0.0.2'), 300),
            Change(const.DELETE, 'web.eu-west-1a.i.example.com', ('10.0.0.3',), None),
        ], comment = 'Autoscaling launch event for web-asg')

        expected = {
            'HostedZoneId': 'Z123',
            'ChangeBatch': {
                'Comment': 'Autoscaling launch event for web-asg',
                'Changes': [{
                    'Action': 'UPSERT',
                    'ResourceRecordSet': {
                        'Name': 'web.eu-west-1.i.example.com',
                        'Type': 'A',
                        'TTL': 300,
                        'ResourceRecords': [{'Value': '10.0.0.1'}, {'Value': '10.0.0.2'}],
                    },
                }, {
                    'Action': 'DELETE',
                    'ResourceRecordSet': {
                        'Name': 'web.eu-west-1a.i.example.com',
                        'Type': 'A',
                        'ResourceRecords': [{'Value': '10.0.0.3'}],
                    },
                }],
            },
        }
        self.assertEqual(expected, batch.request())

class TestCanonicalNames(unittest.TestCase):
    def test_with_zone(self):
        expected = ['web.eu-west-1.i.example.com', 'web.eu-west-1a.i.example.com']
        self.assertEqual(expected, canonical_names(METADATA, 'eu-west-1', 'eu-west-1a'))

    def test_without_zone(self):
        expected = ['web.eu-west-1.i.example.com']
        self.assertEqual(expected, canonical_names(METADATA, 'eu-west-1'))
