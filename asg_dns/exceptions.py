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

class AsgDnsError(Exception):
    pass

class ConfigurationError(AsgDnsError):
    pass

class UnsupportedEventError(AsgDnsError):
    def __init__(self, kind):
        self.kind = kind
        super().__init__("Unsupported ASG event '{}'".format(kind))

class MalformedEventError(AsgDnsError):
    pass

class GroupNotFoundError(AsgDnsError):
    def __init__(self, group_name):
        self.group_name = group_name
        msg = "Unable to find autoscaling group '{}'".format(group_name)
        super().__init__(msg)

class TagError(AsgDnsError):
    pass

class MissingTagError(TagError):
    def __init__(self, field, tag, group_name=None):
        self.field = field
        self.tag = tag
        self.group_name = group_name

        msg = "does not define a '{}' tag".format(tag)
        if group_name:
            msg = "ASG {} {}".format(group_name, msg)
        else:
            msg = "ASG " + msg
        super().__init__(msg)

class DuplicateTagError(TagError):
    def __init__(self, tag, group_name=None):
        self.tag = tag
        self.group_name = group_name

        msg = "Tag '{}' is defined more than once".format(tag)
        if group_name:
            msg += " on ASG {}".format(group_name)
        super().__init__(msg)

class NoInstancesError(AsgDnsError):
    def __init__(self, group_name):
        self.group_name = group_name
        msg = "No running instances were found in ASG {}".format(group_name)
        super().__init__(msg)

class AwsCallError(AsgDnsError):
    """Wraps a botocore error raised by one of the AWS calls.

    The original exception is kept as __cause__ and its text is included in
    the message.
    """
    def __init__(self, operation, error):
        self.operation = operation
        self.error = error
        super().__init__("{} failed: {}".format(operation, error))

class DirectoryError(AwsCallError):
    pass

class DnsLookupError(AwsCallError):
    pass

class DnsWriteError(AwsCallError):
    pass

class ReconciliationFailed(AsgDnsError):
    def __init__(self, failures):
        self.failures = failures

        msg = "Unable to update DNS for {} notification(s)".format(len(failures))
        for notification, error in failures:
            msg += "\n    {}: {}".format(notification, error)
        super().__init__(msg)
