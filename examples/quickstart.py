"""smiwatch Quick Start: enumerate AMD accelerators and read telemetry."""

import logging
import time

import smiwatch

logging.basicConfig(level=logging.INFO)

# 1. Initialize: enumerates every device and starts background sampling
smiwatch.init(sample_interval_ms=500)

# 2. What does each device report?
for device in smiwatch.devices():
    mask = device.probe()
    print(device, "supports:", ", ".join(mask.supported_metrics()) or "nothing")

# 3. Take a sweep on demand; unreadable devices come back as None
for index, s in smiwatch.collect().items():
    if s is None:
        print(f"device {index}: no sample this sweep")
        continue
    print(
        f"device {index}: {s.average_socket_power} mW avg, "
        f"hotspot {s.hotspot_temperature / 1000:.1f} C, gfx {s.gfx_activity}%"
    )

# 4. Or read what the background monitor collected
time.sleep(1.5)
sweep = smiwatch.latest()
if sweep is not None:
    print(f"latest sweep: {len(sweep.samples)} device(s), missing {sweep.missing}")

# 5. Shutdown (stops sampling, releases the driver)
smiwatch.shutdown()
