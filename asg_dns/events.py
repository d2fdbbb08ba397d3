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

"""Turn the different transport envelopes of an autoscaling notification into
Notification tuples.

Supported envelopes:
    * SNS delivery: {"Records": [{"Sns": {"Message": "<json>", ...}}]}
    * SQS delivery: {"Records": [{"body": "<json>", ...}]}, where the body is
      an ASG notification, an SNS notification or an EventBridge event
    * EventBridge event: {"detail-type": "EC2 Instance Launch Successful", ...}

A transport event can bundle multiple notifications, each record is normalized
on its own so that a bad record doesn't affect the others.
"""

import json
import logging
from collections import namedtuple

from . import constants as const
from .exceptions import UnsupportedEventError, MalformedEventError

LOGGER = logging.getLogger(__name__)

Notification = namedtuple('Notification', ['kind', 'group_name', 'region', 'availability_zone'])

def iter_records(event):
    """Yield each of the individual records contained in the given event"""
    if isinstance(event, dict) and 'Records' in event:
        for record in event['Records']:
            yield record
    else:
        yield event

def record_label(record):
    """Identifier for a record to use in log and error messages"""
    if not isinstance(record, dict):
        return '<unknown>'
    if 'Sns' in record:
        sns = record['Sns']
        return sns.get('MessageId', '<sns>') if isinstance(sns, dict) else '<sns>'
    if 'messageId' in record:
        return record['messageId']
    return record.get('id', '<event>')

def arn_region(arn):
    """Region field of an ARN (arn:partition:service:region:account:resource)"""
    if not arn:
        return None
    parts = arn.split(':')
    if len(parts) < 4 or not parts[3]:
        return None
    return parts[3]

def _object(value, what):
    """Check that a nested field of the notification is an object"""
    if not isinstance(value, dict):
        raise MalformedEventError("{} is not an object".format(what))
    return value

def _loads(data, what):
    if isinstance(data, dict):
        return data
    try:
        return json.loads(data)
    except (TypeError, ValueError) as ex:
        raise MalformedEventError("Could not parse {}: {}".format(what, ex))

def normalize_record(record):
    """Normalize one transport record

    Args:
        record (dict): SNS record, SQS record or EventBridge event

    Returns:
        Notification: The region will be None if it could not be determined
                      from the record

    Raises:
        UnsupportedEventError: If the event is not a launch or terminate event
        MalformedEventError: If the record could not be parsed
    """
    if not isinstance(record, dict):
        raise MalformedEventError("Record is not an object")

    if 'Sns' in record:
        sns = _object(record['Sns'], 'SNS record')
        if 'Message' not in sns:
            raise MalformedEventError("SNS record without a Message")
        message = _loads(sns['Message'], 'SNS message')
        return normalize_payload(message, arn_region(sns.get('TopicArn')))

    if 'body' in record:
        region = record.get('awsRegion') or arn_region(record.get('eventSourceARN'))
        body = _loads(record['body'], 'SQS body')

        # SNS topic delivering into the SQS queue
        if isinstance(body, dict) and body.get('Type') == 'Notification' and 'Message' in body:
            region = arn_region(body.get('TopicArn')) or region
            body = _loads(body['Message'], 'SNS message')

        return normalize_payload(body, region)

    return normalize_payload(record, None)

def normalize_payload(payload, region):
    """Normalize an unwrapped ASG notification or EventBridge event

    Args:
        payload (dict): The notification
        region (str|None): Region of the transport that delivered the payload,
                           used if the payload doesn't contain a region
    """
    if not isinstance(payload, dict):
        raise MalformedEventError("Notification is not an object")

    if 'detail-type' in payload:
        return _from_eventbridge(payload, region)
    elif 'Event' in payload:
        return _from_asg_notification(payload, region)
    else:
        raise MalformedEventError("Unrecognized notification format")

def _from_asg_notification(message, region):
    event = message['Event']
    if not isinstance(event, str):
        raise MalformedEventError("ASG notification Event is not a string")
    if event not in const.SNS_EVENT_KINDS:
        raise UnsupportedEventError(event)

    group_name = message.get('AutoScalingGroupName')
    if not group_name:
        raise MalformedEventError("ASG notification without an AutoScalingGroupName")

    details = _object(message.get('Details') or {}, 'ASG notification Details')
    return Notification(kind = const.SNS_EVENT_KINDS[event],
                        group_name = group_name,
                        region = region,
                        availability_zone = details.get('Availability Zone'))

def _from_eventbridge(event, region):
    detail_type = event['detail-type']
    if not isinstance(detail_type, str):
        raise MalformedEventError("EventBridge detail-type is not a string")
    if detail_type not in const.EVENTBRIDGE_EVENT_KINDS:
        raise UnsupportedEventError(detail_type)

    detail = _object(event.get('detail') or {}, 'EventBridge detail')
    group_name = detail.get('AutoScalingGroupName')
    if not group_name:
        raise MalformedEventError("EventBridge event without a detail.AutoScalingGroupName")

    details = _object(detail.get('Details') or {}, 'EventBridge detail.Details')
    return Notification(kind = const.EVENTBRIDGE_EVENT_KINDS[detail_type],
                        group_name = group_name,
                        region = event.get('region') or region,
                        availability_zone = details.get('Availability Zone'))
