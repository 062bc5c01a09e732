"""
Resolve one route from the command line and print it as JSON.

    python routing/scripts/resolve_route.py 53.5142 8.1428 53.5049 8.1554 [foot|bicycle]
"""

import json
import sys

from havenrouting.core_route_service import RouteResolutionEngine
from havenrouting.utils.instruction_utils import format_distance

if len(sys.argv) < 5:
    print(__doc__)
    sys.exit(1)

start = (float(sys.argv[1]), float(sys.argv[2]))
end = (float(sys.argv[3]), float(sys.argv[4]))
profile = sys.argv[5] if len(sys.argv) > 5 else 'foot'

engine = RouteResolutionEngine()
route = engine.resolve_sync(start, end, profile)

result = route.to_dict()
result['distance_text'] = format_distance(route.distance_meters, engine.config.instruction_language)
print(json.dumps(result, indent=2, ensure_ascii=False))
