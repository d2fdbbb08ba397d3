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

"""AWS Lambda entry point.

Keeps the Route53 records for an ASG role up to date when instances are
launched or terminated. Each notification in the event is reconciled on its
own, a failure is raised only after every notification was attempted.

NOTE: Only AutoScale notifications are handled, if an instance is manually
      terminated the DNS records are not updated until the next ASG event.
"""

import json
import logging

from . import events
from . import pipeline
from .configuration import load_configuration
from .exceptions import (AsgDnsError, UnsupportedEventError,
                         MalformedEventError, ReconciliationFailed)

LOGGER = logging.getLogger(__name__)

def setup_logging(level):
    level = logging.getLevelName(str(level).upper())
    logging.basicConfig(format='%(levelname)s %(name)s: %(message)s')
    logging.getLogger().setLevel(level)

def log_configuration(config):
    policy = config.to_policy()
    LOGGER.info('Flavor: "{}"'.format(config.FLAVOR))
    LOGGER.info('Role tag: "{}"'.format(policy.role_tag))
    if policy.domain is None:
        LOGGER.info('R53 Domain-name tag: "{}"'.format(policy.domain_tag))
    else:
        LOGGER.info('Domain-name: "{}"'.format(policy.domain))
    if policy.zone_id is None:
        LOGGER.info('R53 Hosted-zone ID tag: "{}"'.format(policy.zone_id_tag))
    else:
        LOGGER.info('R53 Hosted-zone ID: "{}"'.format(policy.zone_id))
    if policy.region is not None:
        LOGGER.info('AWS Region: "{}"'.format(policy.region))
    LOGGER.info('TTL: "{}"'.format(policy.ttl))

def handler(event, context):
    config = load_configuration()
    setup_logging(config.LOG_LEVEL)
    log_configuration(config)
    LOGGER.debug(json.dumps(event))

    policy = config.to_policy()
    results = []
    failures = []
    for record in events.iter_records(event):
        label = events.record_label(record)
        try:
            notification = events.normalize_record(record)
        except UnsupportedEventError as ex:
            LOGGER.info("{}, no action taken".format(ex))
            continue
        except MalformedEventError as ex:
            LOGGER.error("Record {}: {}".format(label, ex))
            failures.append((label, ex))
            continue

        try:
            result = pipeline.reconcile(notification, policy)
        except AsgDnsError as ex:
            failures.append(("{} ({})".format(notification.group_name, notification.kind), ex))
            continue

        results.append({
            'group': notification.group_name,
            'region': result.region,
            'changes': len(result.batch),
            'change_id': None if result.change_info is None else result.change_info.get('Id'),
        })

    LOGGER.info("Finished")
    if len(failures) > 0:
        raise ReconciliationFailed(failures)
    return results
