import random
from datetime import datetime, timedelta

import pandas as pd

# Parameters
days = 60
start_date = datetime.today() - timedelta(days=days)
dates, temperatures = [], []

# Pick some gap start indices
gap_starts = set(random.sample(range(0, days - 10), 4))

i = 0
while i < days:
    if i in gap_starts:
        i += random.randint(2, 5)  # skip 2-5 days for a gap
        continue
    date = start_date + timedelta(days=i)

    # Normal body temperature with a short fever in the middle
    fever = 1.8 if days // 2 <= i < days // 2 + 4 else 0.0
    noise = random.uniform(-0.3, 0.3)
    temperature = 36.8 + fever + noise

    dates.append(date.strftime("%Y-%m-%d"))
    temperatures.append(round(temperature, 1))
    i += 1

df = pd.DataFrame({"Date": dates, "Temperature": temperatures})

# Save to current directory
csv_path = "sample_temperatures.csv"
df.to_csv(csv_path, index=False)
print(f"Wrote {len(df)} readings to {csv_path}")
