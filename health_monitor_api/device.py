"""Wearable simulator: posts sample readings to the ingest endpoint.

    python -m health_monitor_api.device <subject-uuid> [--url URL] [--interval 2] [--abnormal 0.1]
"""

import argparse
import json
import logging
import random
import time

import requests

logger = logging.getLogger(__name__)

BASE_URL = 'http://127.0.0.1:8000/api/subjects/{subject_id}/readings/'

HEADERS = {
    'Content-Type': 'application/json',
}


def generate_sample_payload(abnormal=False, latitude=None, longitude=None):
    # Resting adult: 60-100 BPM, SpO2 95-100 %, 36.1-37.2 °C
    heart_rate = random.uniform(60, 100)
    spo2 = random.uniform(95, 100)
    temperature = random.uniform(36.1, 37.2)

    if abnormal:
        heart_rate = random.choice([random.uniform(30, 39), random.uniform(121, 160)])
        spo2 = random.uniform(82, 89)
        temperature = random.uniform(38.1, 39.5)

    # Accelerometer: around 0 for x/y, 9.8 for z (gravity)
    accel_x = random.uniform(-1, 1)
    accel_y = random.uniform(-1, 1)
    accel_z = random.uniform(9, 10)

    # Firmware sends the ECG window as a comma-separated string
    raw_values = ",".join(f"{random.uniform(-0.2, 0.2):.3f}" for _ in range(50))

    payload = {
        'heart_rate': round(heart_rate, 1),
        'spo2': round(spo2, 1),
        'temperature': round(temperature, 1),
        'rr_interval': round(60000 / heart_rate, 1),
        'accel_x': accel_x,
        'accel_y': accel_y,
        'accel_z': accel_z,
        'raw_values': raw_values,
        'sensor_fault': False,
    }
    if latitude is not None and longitude is not None:
        payload['latitude'] = latitude
        payload['longitude'] = longitude
    return payload


def send_payload(url, payload, session=None):
    session = session or requests
    try:
        response = session.post(url, headers=HEADERS, data=json.dumps(payload), timeout=10)
    except requests.RequestException as e:
        logger.error("Error sending payload: %s", e)
        return None
    logger.info("Response: %s - %s", response.status_code, response.text)
    return response


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument('subject_id')
    parser.add_argument('--url', default=None, help='Ingest URL (defaults to the local dev server)')
    parser.add_argument('--interval', type=float, default=2.0, help='Seconds between readings')
    parser.add_argument('--abnormal', type=float, default=0.0, help='Probability of an abnormal reading')
    parser.add_argument('--count', type=int, default=0, help='Stop after N readings (0 runs forever)')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(message)s')
    url = args.url or BASE_URL.format(subject_id=args.subject_id)

    sent = 0
    with requests.Session() as session:
        while not args.count or sent < args.count:
            payload = generate_sample_payload(abnormal=random.random() < args.abnormal)
            send_payload(url, payload, session)
            sent += 1
            if not args.count or sent < args.count:
                time.sleep(args.interval)
    return sent


if __name__ == '__main__':
    main()
