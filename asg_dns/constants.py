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

"""Fixed names and values shared by the reconciliation code."""

# Tags read from the autoscaling group
ROLE_TAG = 'role'
ROUTE53_DOMAIN_NAME_TAG = 'r53-domain-name'
ROUTE53_ZONE_ID_TAG = 'r53-zone-id'

TTL_SECONDS = 300
RECORD_TYPE = 'A'

# {role}.{location}.i.{domain}, where location is a region or availability zone
RECORD_NAME_FORMAT = '{role}.{location}.i.{domain}'

IN_SERVICE = 'InService'

# Normalized event kinds
LAUNCH = 'launch'
TERMINATE = 'terminate'
SUPPORTED_KINDS = (LAUNCH, TERMINATE)

# Transport specific spellings of the supported kinds
SNS_EVENT_KINDS = {
    'autoscaling:EC2_INSTANCE_LAUNCH': LAUNCH,
    'autoscaling:EC2_INSTANCE_TERMINATE': TERMINATE,
}

EVENTBRIDGE_EVENT_KINDS = {
    'EC2 Instance Launch Successful': LAUNCH,
    'EC2 Instance Terminate Successful': TERMINATE,
}

# Change actions
UPSERT = 'UPSERT'
DELETE = 'DELETE'

# Pipeline stages
RESOLVING_GROUP = 'ResolvingGroup'
EXTRACTING_TAGS = 'ExtractingTags'
FILTERING_MEMBERSHIP = 'FilteringMembership'
RESOLVING_ADDRESSES = 'ResolvingAddresses'
BUILDING_MAPPING = 'BuildingMapping'
RECONCILING = 'Reconciling'
SUBMITTING = 'Submitting'
DONE = 'Done'
FAILED = 'Failed'
