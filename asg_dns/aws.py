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

"""AWS lookups and updates used by the reconciliation.

All functions take an active Boto3 session. Errors from botocore are wrapped
in DirectoryError (autoscaling / ec2), DnsLookupError or DnsWriteError
(route53) with the original exception chained. Nothing is retried.
"""

import logging
from collections import namedtuple

from boto3.session import Session
from botocore.exceptions import BotoCoreError, ClientError

from . import constants as const
from .exceptions import (GroupNotFoundError, DirectoryError,
                         DnsLookupError, DnsWriteError)
from .records import same_name

LOGGER = logging.getLogger(__name__)

AWS_ERRORS = (ClientError, BotoCoreError)
INSTANCE_NOT_FOUND = 'InvalidInstanceID.NotFound'

Group = namedtuple('Group', ['name', 'tags', 'instances'])
GroupMember = namedtuple('GroupMember', ['id', 'lifecycle_state'])
Instance = namedtuple('Instance', ['id', 'private_address', 'availability_zone'])

def create_session(region, profile=None):
    return Session(profile_name = profile, region_name = region)

def get_all(to_wrap, key):
    """Utility helper method for requesting all results from AWS

    Usage:
        items = get_all(session.client('ec2').describe_instances, 'Reservations') \
                (InstanceIds=[...])
        items # => List of Reservations returned by describe_instances

    Args:
        to_wrap (method): AWS client method to execute to get results
        key (str): The dictionary key in the `to_wrap` response where results
                   are stored

    Returns:
        function: Function that takes arguments for `to_wrap` and will continue to call
                  `to_wrap` until there is not a valid 'NextToken' in the response. The
                  result is a list of values that were stored under `key` in the original
                  response from AWS
    """
    def wrapper(*args, **kwargs):
        rtn = []
        while True:
            resp = to_wrap(*args, **kwargs)
            rtn.extend(resp.get(key, []))

            if 'NextToken' in resp and resp['NextToken'] is not None:
                kwargs['NextToken'] = resp['NextToken']
            else:
                return rtn
    return wrapper

def lookup_group(session, group_name):
    """Lookup the tags and members of an autoscaling group

    Args:
        session (Session) : Active Boto3 session
        group_name (str) : Name of the autoscaling group

    Returns:
        Group: tags is a list of (key, value) tuples in the order AWS returned
               them, instances is a list of GroupMember

    Raises:
        GroupNotFoundError: If AWS doesn't know the group
        DirectoryError: If the AWS call failed
    """
    client = session.client('autoscaling')
    try:
        response = client.describe_auto_scaling_groups(AutoScalingGroupNames = [group_name],
                                                       MaxRecords = 1)
    except AWS_ERRORS as ex:
        raise DirectoryError('DescribeAutoScalingGroups', ex) from ex

    groups = response.get('AutoScalingGroups', [])
    if len(groups) == 0:
        raise GroupNotFoundError(group_name)

    group = groups[0]
    return Group(name = group.get('AutoScalingGroupName', group_name),
                 tags = [(tag['Key'], tag['Value']) for tag in group.get('Tags', [])],
                 instances = [GroupMember(i['InstanceId'], i['LifecycleState'])
                              for i in group.get('Instances', [])])

def lookup_instances(session, instance_ids):
    """Lookup the private address and availability zone of the given instances

    No request is made if instance_ids is empty. Instances AWS doesn't return,
    doesn't know about yet, or that have no private address are left out of
    the results.

    Args:
        session (Session) : Active Boto3 session
        instance_ids (list[str]) : EC2 instance ids

    Returns:
        list[Instance]: In the same order as instance_ids

    Raises:
        DirectoryError: If the AWS call failed
    """
    if len(instance_ids) == 0:
        return []

    client = session.client('ec2')
    describe = get_all(client.describe_instances, 'Reservations')
    try:
        try:
            reservations = describe(InstanceIds = list(instance_ids), DryRun = False)
        except ClientError as ex:
            if ex.response.get('Error', {}).get('Code') != INSTANCE_NOT_FOUND:
                raise

            # EC2 rejects the whole request if any id is not visible yet, a
            # filter on the ids returns the instances that are
            LOGGER.warning("Not all instances are visible yet: {}".format(ex))
            reservations = describe(Filters = [{'Name': 'instance-id',
                                                'Values': list(instance_ids)}],
                                    DryRun = False)
    except AWS_ERRORS as ex:
        raise DirectoryError('DescribeInstances', ex) from ex

    found = {}
    for reservation in reservations:
        for item in reservation.get('Instances', []):
            found[item['InstanceId']] = item

    instances = []
    for id in instance_ids:
        item = found.get(id)
        if item is None:
            LOGGER.warning("Instance {} was not returned by EC2, skipping".format(id))
            continue

        address = item.get('PrivateIpAddress')
        if not address:
            LOGGER.warning("Instance {} has no private address, skipping".format(id))
            continue

        instances.append(Instance(id = id,
                                  private_address = address,
                                  availability_zone = item['Placement']['AvailabilityZone']))
    return instances

def lookup_record(session, zone_id, name):
    """Lookup the current A record with the given name

    Args:
        session (Session) : Active Boto3 session
        zone_id (str) : Route53 hosted zone id
        name (str) : Record name

    Returns:
        (dict|None) : The ResourceRecordSet as returned by Route53 or None if
                      there is no A record with the name

    Raises:
        DnsLookupError: If the AWS call failed
    """
    client = session.client('route53')
    try:
        response = client.list_resource_record_sets(HostedZoneId = zone_id,
                                                    StartRecordName = name,
                                                    StartRecordType = const.RECORD_TYPE,
                                                    MaxItems = '1')
    except AWS_ERRORS as ex:
        raise DnsLookupError('ListResourceRecordSets', ex) from ex

    # Route53 returns the next record in order if the requested one doesn't exist
    for record in response.get('ResourceRecordSets', []):
        if same_name(record['Name'], name) and record['Type'] == const.RECORD_TYPE:
            return record
    return None

def submit_changes(session, batch):
    """Submit the ChangeBatch to Route53 as a single request

    Returns:
        dict: The ChangeInfo returned by Route53

    Raises:
        DnsWriteError: If the AWS call failed
    """
    client = session.client('route53')
    try:
        response = client.change_resource_record_sets(**batch.request())
    except AWS_ERRORS as ex:
        raise DnsWriteError('ChangeResourceRecordSets', ex) from ex

    return response.get('ChangeInfo', {})
