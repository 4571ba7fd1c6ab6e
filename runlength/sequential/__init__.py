"""
Sequential statistics and stopping times.

This package contains the online machinery that turns a stream of
observations into run lengths:

1. **Sliding windows** (`runlength.sequential.sliding`):
   fixed-capacity circular history of the most recent observations.

2. **Statistics** (`runlength.sequential.statistics`):
   CUSUM, finite moving average and window-limited CUSUM, together with the
   transient-period transforms in `runlength.sequential.transforms`.

3. **Stopping times** (`runlength.sequential.stopping_time` and
   `runlength.sequential.parallel`): one-sided multi-threshold rules,
   window-limited charts, and the two-statistic parallel rule.

4. **Processes** (`runlength.sequential.processes`):
   observation sources that fan generated values out to their observers.

Example:
--------
>>> from runlength.sequential.stopping_time import CusumChart
>>> chart = CusumChart(thresholds=[3.0])
>>> chart.observe_block([1.0, 1.5, 1.0])
>>> chart.when()
[3]
"""
