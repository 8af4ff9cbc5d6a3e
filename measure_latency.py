#!/usr/bin/env python3
"""
Latency measurement script for the dashboard aggregation endpoints
Measures classifications, compliance snapshot, trends and today's appointments

Usage: python measure_latency.py [doctor_id,doctor_id,...]
"""
import statistics
import sys
import time

import requests

API_BASE = "http://127.0.0.1:8000/api/v1"
DEFAULT_DOCTOR_IDS = "latency-test-doctor"
NUM_ITERATIONS = 10

ENDPOINTS = [
    ("GET /patients/classifications", "/patients/classifications"),
    ("GET /reports/compliance", "/reports/compliance"),
    ("GET /reports/trends", "/reports/trends"),
    ("GET /reports/overview", "/reports/overview"),
    ("GET /appointments/today", "/appointments/today"),
]


def measure_endpoint(name: str, url: str, headers: dict):
    """Measure latency for a single endpoint"""
    times = []
    errors = 0

    print(f"\nMeasuring {name}...")

    for i in range(NUM_ITERATIONS):
        start = time.time()
        try:
            response = requests.get(url, headers=headers, timeout=30)
        except requests.RequestException as e:
            errors += 1
            duration = (time.time() - start) * 1000
            print(f"  Iteration {i+1}: ERROR - {e} ({duration:.2f}ms)")
            continue
        duration = (time.time() - start) * 1000  # Convert to ms
        times.append(duration)
        if response.status_code != 200:
            errors += 1
            print(f"  Iteration {i+1}: {response.status_code} - {duration:.2f}ms")
        else:
            failed = response.json().get("failed_units", []) if isinstance(response.json(), dict) else []
            suffix = f" ({len(failed)} degraded)" if failed else ""
            print(f"  Iteration {i+1}: {duration:.2f}ms{suffix}")

    if not times:
        print(f"  ERROR: All requests failed for {name}")
        return None

    p95 = statistics.quantiles(times, n=20)[18] if len(times) > 1 else times[0]
    result = {
        'name': name,
        'avg': statistics.mean(times),
        'median': statistics.median(times),
        'min': min(times),
        'max': max(times),
        'p95': p95,
        'errors': errors,
    }
    print(f"\n  Results for {name}:")
    print(f"    Average: {result['avg']:.2f}ms")
    print(f"    Median:  {result['median']:.2f}ms")
    print(f"    Min:     {result['min']:.2f}ms")
    print(f"    Max:     {result['max']:.2f}ms")
    print(f"    P95:     {result['p95']:.2f}ms")
    print(f"    Errors:  {errors}/{NUM_ITERATIONS}")
    return result


def main():
    """Run latency measurements"""
    doctor_ids = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_DOCTOR_IDS
    headers = {'X-Doctor-IDs': doctor_ids}

    results = []
    for name, path in ENDPOINTS:
        result = measure_endpoint(name, f"{API_BASE}{path}", headers)
        if result:
            results.append(result)

    # Summary
    print("\n" + "="*60)
    print("SUMMARY")
    print("="*60)
    if not results:
        print("No successful measurements")
        sys.exit(1)

    total_avg = sum(r['avg'] for r in results) / len(results)
    print(f"\nAverage latency across all endpoints: {total_avg:.2f}ms")
    print("\nPer-endpoint averages:")
    for r in results:
        print(f"  {r['name']:32} {r['avg']:7.2f}ms (median: {r['median']:.2f}ms)")


if __name__ == "__main__":
    main()
