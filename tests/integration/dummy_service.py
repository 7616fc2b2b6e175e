# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
A long-running service used by the integration tests.

Prints its environment, drops a marker file in its working directory and
idles until terminated.
"""
import os
import time


def main():
    print("Dummy service starting...", flush=True)
    print(f"DEBUG: {os.environ.get('DEBUG')}", flush=True)
    print(f"APP_ENV: {os.environ.get('APP_ENV')}", flush=True)
    with open("started.txt", "w") as f:
        f.write("started")

    for _ in range(600):
        time.sleep(0.1)

    print("Dummy service finishing.", flush=True)


if __name__ == "__main__":
    main()
