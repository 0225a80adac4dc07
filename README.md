# flightcore

Flight-control building blocks for a small quadcopter, in plain Python with
no third-party dependencies.

## What is inside

- `flightcore.matrix` — dense matrix helpers on nested lists: `mat_mult`,
  `mat_mult_t` (`a * b'`), `mat_t_mult` (`a' * b`), `mat_transpose`,
  `mat_invert` (LU decomposition with partial pivoting), `mat_cross`,
  `mat_norm2`, `mat_normalize`, the Householder triangulation routines
  `mat_qr_sub_t` and `mat_qr_t`, and `format_matrix` for printing.
  Mismatched dimensions raise `ValueError`.
- `flightcore.rc` — receiver input conditioning. `RcPilot.update` takes six
  raw pulse widths in `Channel` order, clamps them to 900–2000 µs, smooths the
  throttle with a short moving average, and maps each stick through its
  `ChannelCalibration` with `manual_map`. It counts identical frames and marks
  the receiver or the kill wire as bad after 100 of them; the result is kept
  in an `RcInput`. Call `RcPilot.reset` before flight to mark both links good.
  `RcPilot.format` describes the raw and conditioned values.
- `flightcore.mixer` — `map_stick_input` maps a pulse width from 900–2000 onto
  [-1, 1]; `is_armed` combines receiver health with the kill switch;
  `select_mode` decodes the three-position switch into a `FlightMode`
  (`AUTO`, `MANUAL`, `PAYLOAD_DROP`); `update_mixer` mixes normalised thrust
  and moment commands into four motor pulse widths (front-right, back-right,
  back-left, front-left), clamped to 1000–1980 µs, returned as a `MixerOutput`.
- `flightcore.motors` — `Motors` drives four ESC outputs and a payload servo.
  Each output is any object with `begin(period_us)` and
  `set_pulse_width(width_us)` methods; a `sleep` callable (by default
  `time.sleep`) provides the waits. It offers `start`, `calibrate`, `stop`,
  `update` (clamps and returns the values sent), `servo_open` and
  `servo_closed`.
- `flightcore.quaternions` — scalar-first quaternion utilities:
  `quat_to_euler`, `fix_quaternion`, `rotation_matrix`,
  `quaternion_difference`, `quaternion_dot_to_angular_rates`, the lever-arm
  corrections `correct_imu_data` and `correct_motion_capture_position`, and
  `add_orientation_noise` (takes an optional `random.Random`).
- `flightcore.ekf` — a two-part extended Kalman filter. The orientation filter
  has 7 states (quaternion and gyro biases); the position filter has 9 states
  (position, velocity and accelerometer biases). The building blocks
  (`find_q_orientation`, `predict_orientation`, `correct_orientation`,
  `find_q_position`, `predict_position`, `correct_position` and the rest) are
  pure functions returning new states and covariances. `NavigationFilter`
  runs both: a changed IMU counter triggers a prediction, a changed
  motion-capture counter then triggers a correction, and the result is a
  `NavigationOutput`.
- `flightcore.sensors` — `Sensors(lowpass_weight)` turns `RawSensorData`
  register counts into an `ImuReading`: axis remapping, scaling to deg/s and
  degrees (and radians), bias calibration with `Sensors.calibrate`, and
  low-pass filtering of the gyro once calibrated.

## Install

```
pip install .
pip install ".[test]"   # with the test dependencies
```

## Examples

```python
from flightcore.mixer import is_armed, map_stick_input, update_mixer

throttle = map_stick_input(1450)          # 0.0
armed = is_armed(True, True, 1000)        # True
out = update_mixer(armed, throttle, 0.0, 0.0, 0.0)
print(out.launch_state, out.pwm)          # 1 (1500.0, 1500.0, 1500.0, 1500.0)
```

```python
from flightcore.rc import RcPilot

rc = RcPilot()
rc.reset()
state = rc.update([1500, 1500, 1000, 1500, 1000, 1000])
print(state.roll, state.thr, state.good_receiver)
```

```python
from flightcore.ekf import NavigationFilter

nav = NavigationFilter()
result = nav.update(
    dt=0.01,
    gyro=(0.0, 0.0, 0.0),
    accel=(0.0, 0.0, -32.2),
    imu_counter=1,
    mocap_position=(0.0, 0.0, 0.0),
    mocap_quaternion=(1.0, 0.0, 0.0, 0.0),
    mocap_counter=1,
)
print(result.quaternion, result.position, result.psi)
```

## What it does not do

The package is a library of computations. It does not talk to hardware: it
does not read a receiver, an IMU or a motion-capture system, and `Motors`
only calls the output objects it is given. It has no attitude or position
controller, no waypoint logic, no ground-station link and no flight loop or
command to run; the caller schedules the updates and wires the pieces
together.

## Tests

```
pytest
```