"""Script bundle mounted into every index management job.

The scripts run inside the scheduled jobs and talk to Elasticsearch using
the cluster's admin certificates. They are opaque to the reconciler: it
only ships them as the data of the scripts config object.
"""

from __future__ import annotations

from index_lifecycle.defaults import DEFAULTS, ReconcilerDefaults
from index_lifecycle.models import ClusterIdentity, ConfigObject, ObjectMeta

SCRIPT_BUNDLE: dict[str, str] = {
    "es_util": """\
#!/bin/bash
# Usage: es_util <query> [curl args...]
set -euo pipefail
query="$1"; shift
curl -s --cacert /etc/indexmanagement/keys/admin-ca \\
  --cert /etc/indexmanagement/keys/admin-cert \\
  --key /etc/indexmanagement/keys/admin-key \\
  "${ES_SERVICE}/${query}" "$@"
""",
    "rollover": """\
#!/bin/bash
# Rolls over the write index of ${POLICY_MAPPING} when any condition is met.
set -euo pipefail
conditions="$(echo "${PAYLOAD}" | base64 -d)"
if [ "$(echo "${conditions}" | python3 -c 'import json,sys; print(len(json.load(sys.stdin)["conditions"]))')" = "0" ]; then
  echo "No rollover conditions for ${POLICY_MAPPING}, nothing to do"
  exit 0
fi
response="$(/tmp/scripts/es_util "${POLICY_MAPPING}-write/_rollover?pretty" \\
  -XPOST -H 'Content-Type: application/json' -d "${conditions}")"
echo "${response}"
echo "${response}" | grep -q '"acknowledged" : true' || {
  echo "${response}" | grep -q '"rolled_over" : false'
}
""",
    "delete": """\
#!/bin/bash
# Deletes indices of ${POLICY_MAPPING} older than ${MIN_AGE} milliseconds,
# never touching the current write index.
set -euo pipefail
now_ms="$(($(date +%s) * 1000))"
write_index="$(/tmp/scripts/es_util "_alias/${POLICY_MAPPING}-write" \\
  | python3 -c 'import json,sys; print(" ".join(json.load(sys.stdin)))')"
/tmp/scripts/es_util "${POLICY_MAPPING}-*/_settings/index.creation_date" \\
  | python3 -c '
import json, sys
now, min_age, write = int(sys.argv[1]), int(sys.argv[2]), sys.argv[3].split()
for name, body in json.load(sys.stdin).items():
    created = int(body["settings"]["index"]["creation_date"])
    if name not in write and now - created > min_age:
        print(name)
' "${now_ms}" "${MIN_AGE}" "${write_index}" \\
  | while read -r index; do
      echo "Deleting index ${index}"
      /tmp/scripts/es_util "${index}" -XDELETE
    done
""",
}


def build_script_config(
    cluster: ClusterIdentity,
    defaults: ReconcilerDefaults = DEFAULTS,
    bundle: dict[str, str] | None = None,
) -> ConfigObject:
    """Build the config object carrying the script bundle."""
    return ConfigObject(
        metadata=ObjectMeta(
            name=defaults.config_name,
            namespace=cluster.namespace,
            labels=dict(defaults.labels),
            owner_references=cluster.owner_references(),
        ),
        data=dict(SCRIPT_BUNDLE if bundle is None else bundle),
    )
